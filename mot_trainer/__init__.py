"""MOT service trainer: role-played customer-service practice with live coaching."""

__version__ = "0.1.0"
