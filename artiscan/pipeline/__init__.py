"""Console output infrastructure."""
from .ui import console, print_header, print_success, print_warning, severity_markup

__all__ = ["console", "print_header", "print_success", "print_warning", "severity_markup"]
