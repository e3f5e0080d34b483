"""flowaudit - semantic analysis of CI/CD workflow documents."""

__version__ = "0.1.0"
