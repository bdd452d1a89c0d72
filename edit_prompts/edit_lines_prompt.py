"""EditLinesTool 的提示词定义"""

edit_lines_prompt = """EditLines: Replace, insert or delete lines by 1-indexed line number.

## Purpose
Edit a file by explicit line ranges when the text to change is easier to address by position than by content (for example right after a Read with line numbers).

## Parameters
- `path` (string, required): Relative path to the file. POSIX style, no absolute paths.
- `start_line` (integer, required): First line of the range (1-indexed).
- `end_line` (integer, optional): Last line of the range, inclusive. Defaults to `start_line`. Ignored for insert.
- `new_lines` (string, optional): Text to write. Split on newlines; a single trailing newline does not add an empty line.
- `mode` (string, optional): "replace" (default), "insert" (before start_line; use line count + 1 to append) or "delete".
- `preview` (boolean, optional): If true, return a BEFORE/AFTER excerpt without writing. Default: false.

## Important Rules
1. Line numbers refer to the file as it is now. After an edit, line numbers below the edit shift; Read again before the next EditLines call.
2. The file's line endings (LF or CRLF) and its missing final newline are preserved.

## Response Structure
- status: "success" | "partial" | "error" ("partial" for preview)
- data.applied, data.mode, data.lines_affected
- data.excerpt: BEFORE/AFTER panes with line numbers around the edited range
- data.line_count_before / data.line_count_after
- error: {code, message, details} (only when status="error")

## Error Codes
- `RANGE_ERROR`: start_line < 1, end_line < start_line, or a line beyond the end of the file (details.line_count)
- `INVALID_PARAM`: Unknown mode or wrong parameter types
- `NOT_FOUND` / `IS_DIRECTORY` / `BINARY_FILE` / `ACCESS_DENIED` / `CONFLICT` / `IO_ERROR`
"""
