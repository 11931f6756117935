"""Notifications app: in-app notifications and transactional email."""
