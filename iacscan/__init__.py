"""Infrastructure-as-code scanning support: ignore policies, Git and cloud API helpers, and scan orchestration."""

__version__ = "0.1.0"