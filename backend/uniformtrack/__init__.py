"""uniformtrack: school uniform inventory and distribution tracking."""
