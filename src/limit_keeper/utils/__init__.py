"""Chain connection and contract helpers."""
