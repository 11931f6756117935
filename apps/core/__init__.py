"""Core app package: infrastructure endpoints shared by the whole project."""
