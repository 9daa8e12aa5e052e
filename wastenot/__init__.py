"""WasteNot: meal waste tracking with photo-based scoring."""
