"""Root conftest: puts the project root on ``sys.path`` so tests can import ``tests.config``."""
