"""Report rendering to HTML, PDF and CSV."""
