"""secretwatch: Secret rotation blast-radius monitor for Kubernetes."""

__version__ = "0.1.0"
