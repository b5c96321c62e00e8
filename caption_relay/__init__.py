"""Meeting caption capture: deduplicated transcript, translation sink, AI assist."""
