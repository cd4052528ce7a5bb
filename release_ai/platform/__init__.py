"""Platform helpers: subprocesses, files, user directories."""
