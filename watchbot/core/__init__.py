"""Change-detection and task-emission engine."""
