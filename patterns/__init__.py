"""Reusable patterns shared by the bookstore vertical.

Each module demonstrates a self-contained pattern: workflow state
machines and dataclass domain configuration.
"""
