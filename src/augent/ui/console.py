"""
Shared console instances for augent output.

- console: main console for reports and tables
- error_console: stderr console for application errors
- log_console: stderr console used by the logging handler
"""

from rich.console import Console

# Main console for general output
console = Console(color_system="auto")

# Error console for application errors
error_console = Console(
    stderr=True,
    style="bold red",
)

# Console for log records; kept on stderr so reports on stdout stay parseable
log_console = Console(stderr=True)
