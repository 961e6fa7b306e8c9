"""Demo workload that reads a mounted secret file."""

from secretwatch.demo.app import create_demo_app

__all__ = ["create_demo_app"]
