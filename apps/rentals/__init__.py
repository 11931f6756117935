"""Rentals app package.

This app encapsulates the rental request domain: price calculation,
availability checks against paid rentals (including the buffer period
after each paid rental), status transitions and customer feedback.
Checks run inside database transactions and lock the competing rows
when the backend supports ``SELECT ... FOR UPDATE``.
"""
