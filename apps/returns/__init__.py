"""Returns app: handing products back after a rental and assessing damage."""
