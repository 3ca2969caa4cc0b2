"""Click commands registered on the ``ascan`` group in artiscan.cli."""
