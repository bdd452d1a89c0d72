"""WriteTool 的提示词定义

该提示词用于向 LLM 描述 Write 工具的功能和使用方式。
"""

write_prompt = """Write: Create or overwrite a file with FULL content.

## Purpose
Create new files or completely replace existing file content. This tool performs **full overwrite** - you must provide the complete file content, not patches or snippets.

## Key Features
1. **Auto-Mkdir**: Parent directories are created by default (`create_dirs=true`).
2. **Size Guard**: Overwriting a file larger than 1000 bytes with content under 10% of its size is refused (SIZE_GUARD) unless `allow_size_reduce=true`.
3. **Diff Preview**: Returns a unified diff showing your changes.
4. **Dry Run Mode**: Use `dry_run=true` to preview changes without writing.
5. **Atomic Write**: Temp file + fsync + rename; the old file stays intact on failure.

## Parameters
- `path` (string, required): Relative path to the file. POSIX style (use `/`), no absolute paths.
- `content` (string, required): The FULL content to write to the file.
- `allow_size_reduce` (boolean, optional): Confirm an intentional large shrink. Default: false.
- `create_dirs` (boolean, optional): Create missing parent directories. Default: true.
- `dry_run` (boolean, optional): If true, only compute diff without writing. Default: false.
- `expected_mtime_ms` / `expected_size_bytes` (integer, optional): Injected by the framework after Read; refuse with CONFLICT if the file changed.

## Best Practices
1. **Read Before Write**: Always use Read first before overwriting an existing file.
2. **Prefer targeted edits**: Use SearchReplace, ApplyPatch or EditLines to change part of a file.
3. **Check Diff**: Review the returned `diff_preview`; if `diff_truncated=true`, Read to verify.

## Output
- `data.applied`: Whether the file was actually written (false if dry_run)
- `data.operation`: "create" or "update"
- `data.diff_preview` / `data.diff_truncated`
- `data.guard`: {allowed, old_size, new_size, ratio, threshold, reason}
- `stats.lines_added/lines_removed/bytes_written`

## Error Codes
- `SIZE_GUARD`: Content is suspiciously small compared to the existing file (details.old_size, details.new_size)
- `INVALID_PARAM`: Missing path/content, or absolute path used
- `ACCESS_DENIED`: Path outside project root (sandbox violation)
- `IS_DIRECTORY`: Target path is a directory
- `CONFLICT`: File was modified since you read it
- `IO_ERROR`: Permission, missing directory (with create_dirs=false), disk full

## Examples

### Create a new file
```json
{
  "path": "src/utils/helper.py",
  "content": "def greet(name):\\n    return f'Hello, {name}!'\\n"
}
```

### Intentionally shrink a large file
```json
{
  "path": "data/fixtures.json",
  "content": "[]\\n",
  "allow_size_reduce": true
}
```
"""
