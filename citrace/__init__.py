"""citrace - follow GitLab CI job logs in real time."""

__version__ = "0.1.0"
