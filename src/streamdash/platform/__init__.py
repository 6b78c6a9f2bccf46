"""Platform infrastructure shared by streamdash features."""
