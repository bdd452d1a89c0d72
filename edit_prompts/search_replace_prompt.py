"""SearchReplaceTool 的提示词定义

该提示词用于向 LLM 描述 SearchReplace 工具的功能和使用方式。
"""

search_replace_prompt = """SearchReplace: Apply one or more SEARCH/REPLACE blocks to an existing file.

## Purpose
Make targeted changes to an existing file by quoting the exact text to find and the text to put in its place. Several blocks can be sent in one call; they are applied in order and either all succeed or nothing is written.

## Block Format
```
------- SEARCH
[exact text copied from the file]
=======
[replacement text]
+++++++ REPLACE
```
The legacy markers `<<<<<<< SEARCH` and `>>>>>>> REPLACE` are accepted too. Text outside blocks is ignored.

## Parameters
- `path` (string, required): Relative path to the file. POSIX style (use `/`), no absolute paths.
- `diff` (string, required): One or more SEARCH/REPLACE blocks.
- `preview` (boolean, optional): If true, only compute the result and diff without writing. Default: false.
- `expected_mtime_ms` / `expected_size_bytes` (integer, optional): Injected by the framework after Read. When both are present the edit is refused with CONFLICT if the file changed since it was read.

## Important Rules
1. **List blocks in file order.** Each SEARCH is looked up only after the end of the previous match, so two identical SEARCH texts hit the first and then the second occurrence.
2. **Copy SEARCH text exactly** from Read output: no line numbers, keep indentation.
3. **Keep SEARCH short but distinctive**: a few lines around the change are enough.
4. REPLACE text is inserted verbatim; it is never re-indented.
5. If exact text is not found, a whitespace-tolerant line match is tried. The response then has `fallback_used=true` and status "partial"; check the diff.
6. Use Write for new files.

## Response Structure
- status: "success" | "partial" | "error"
  - "partial": preview mode, whitespace fallback used, or diff truncated
- data.applied: Whether the file was written
- data.blocks_applied / data.total_blocks
- data.matches: [{index, start, end, tier}] resolved offsets in the original content
- data.fallback_used: Whether any block needed the whitespace-tolerant match
- data.diff_preview / data.diff_truncated
- error: {code, message, details} (only when status="error")

## Error Codes
- `PARSE_ERROR`: Malformed block markers (details.block_index, details.near_text)
- `NO_MATCH`: A SEARCH section was not found (details.block_index, details.search_preview); nothing was written
- `INVALID_PARAM`: Missing parameters or an empty (or whitespace-only) SEARCH section
- `NOT_FOUND` / `IS_DIRECTORY` / `BINARY_FILE`: Target is not an editable text file
- `ACCESS_DENIED`: Path outside project root
- `CONFLICT`: File was modified since you read it (re-read and retry)
- `IO_ERROR`: Read or write failure
"""
