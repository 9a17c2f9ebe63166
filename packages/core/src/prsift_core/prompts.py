"""Prompt text and tool schemas shared by every review provider."""

from __future__ import annotations

REVIEW_PROMPT = """You are an expert code reviewer. Review the following PR changes.

## PR Information
{pr_info}

## Changed Files
{files}

## Diff
{diff}

## Instructions
1. Review the code for general quality issues:
   - Bugs and logic errors
   - Code style and best practices
   - Missing error handling
   - Readability and maintainability
   - Potential edge cases
   - Security vulnerabilities

2. For each issue found, provide:
   - File path and line numbers in the new version of the file
   - Clear explanation of the problem
   - Concrete suggestion with code (raw code only, no markdown fences)

3. Be constructive and specific. Only flag real issues that matter.
   - Focus on bugs, security issues, and logic errors first
   - Then consider style and best practices
   - Avoid nitpicking or suggesting changes for change's sake

4. Use the read_file tool if you need to see the full content of a file for context.

5. When finished, submit your review using the submit_result tool with:
   - A summary of your findings
   - A list of findings with file, line numbers, severity, message, and suggested fix
   - Whether the PR is approved (no errors found)"""

READ_FILE_TOOL = "read_file"
READ_FILE_DESCRIPTION = "Read the full content of a file in the PR for additional context"
READ_FILE_SCHEMA = {
    "type": "object",
    "properties": {
        "path": {"type": "string", "description": "File path relative to repository root"},
    },
    "required": ["path"],
}

SUBMIT_TOOL = "submit_result"
SUBMIT_DESCRIPTION = "Submit the finished code review"
SUBMIT_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string", "description": "Overall review summary highlighting key findings"},
        "findings": {
            "type": "array",
            "description": "List of code findings and issues found",
            "items": {
                "type": "object",
                "properties": {
                    "file": {"type": "string", "description": "File path relative to repository root"},
                    "line_start": {"type": "integer", "description": "Starting line number of the issue"},
                    "line_end": {"type": "integer", "description": "Ending line number of the issue"},
                    "severity": {
                        "type": "string",
                        "enum": ["error", "warning", "info"],
                        "description": "Severity level: error, warning, or info",
                    },
                    "message": {"type": "string", "description": "Clear explanation of the issue found"},
                    "suggestion": {"type": "string", "description": "Suggested code fix or improvement"},
                },
                "required": ["file", "line_start", "line_end", "severity", "message"],
            },
        },
        "approved": {"type": "boolean", "description": "Whether the PR is approved for merge"},
    },
    "required": ["summary", "findings", "approved"],
}
