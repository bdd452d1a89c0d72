"""ApplyPatchTool 的提示词定义"""

apply_patch_prompt = """ApplyPatch: Apply a unified diff to an existing file.

## Purpose
Apply a standard unified diff (`@@ -a,b +c,d @@` hunks). Hunks are located by their content (context and removed lines), so small line-number drift is tolerated: the declared line is tried first, then the first matching position after the previous hunk.

## Parameters
- `path` (string, required): Relative path to the file. POSIX style, no absolute paths.
- `patch` (string, required): Unified diff text. `---`/`+++` headers and `diff --git` lines are optional and ignored.
- `dry_run` (boolean, optional): If true, return the patched content without writing. Default: false.
- `strict` (boolean, optional): If true, hunks must match exactly; whitespace-insensitive matching is disabled and a mismatch fails with `NO_MATCH`. Default: false.

## Important Rules
1. Include at least 2-3 lines of unchanged context around each change.
2. Hunks must be in ascending file order.
3. Context and removed lines must match the current file (surrounding whitespace differences are tolerated and reported as `fuzzy` unless `strict` is set).
4. A dry run followed by a real apply on the unchanged file produces exactly the same content.

## Response Structure
- status: "success" | "partial" | "error"
  - "partial": dry_run, fuzzy hunk match, or diff truncated
- data.applied: Whether the file was written
- data.hunks: [{index, declared_start, resolved_start, offset, lines_removed, lines_added, fuzzy}]
- data.diff_preview / data.diff_truncated
- data.preview_content: Patched content (dry_run only)
- error: {code, message, details} (only when status="error")

## Error Codes
- `PARSE_ERROR`: Malformed diff or no hunk found (details.hunk_index, details.near_text)
- `NO_MATCH`: A hunk could not be located (details.hunk_index, details.declared_start); nothing was written
- `INVALID_PARAM`: Missing or empty patch
- `NOT_FOUND` / `IS_DIRECTORY` / `BINARY_FILE` / `ACCESS_DENIED` / `CONFLICT` / `IO_ERROR`
"""
