"""opsfleet — filter and command OpsWorks stacks across a whole fleet."""

__version__ = "0.1.0"
