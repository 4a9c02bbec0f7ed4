"""Long-running watcher process: configuration and poll loop."""
