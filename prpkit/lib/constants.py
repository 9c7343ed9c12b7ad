"""Shared constants for prpkit."""

# Process exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

DEFAULT_PROMPT_FILE = "/tmp/prp-implementation-prompt.md"
DEFAULT_CONTEXT_FILE = "/tmp/discussion-context.md"
DEFAULT_DYNAMIC_PROMPT_FILE = "/tmp/dynamic-prompt.md"
