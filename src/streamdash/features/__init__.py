"""Business features built on the streamdash platform."""
