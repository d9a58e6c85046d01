"""Theme configuration for Rich console output.

Color schemes, icons and the Rich theme shared by the CLI and the HTML
report renderer.
"""

from rich.theme import Theme

# Monitoring status color mappings
STATUS_COLORS = {
    'up': 'green',
    'warning': 'yellow',
    'down': 'red',
    'error': 'bold red',
    'unknown': 'dim',
}

# Unicode icons for various status indicators
ICONS = {
    'success': '✓',
    'error': '✗',
    'warning': '⚠',
    'info': 'ℹ',
    'site': '🌐',
}


def status_style(status: str) -> str:
    """Rich style for a monitoring status, 'white' when unknown."""
    return STATUS_COLORS.get(status, 'white')


def get_theme() -> Theme:
    """Get the Rich theme with custom styles.

    Returns:
        Theme: Rich Theme object with custom style definitions
    """
    return Theme({
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "timestamp": "dim"
    })
