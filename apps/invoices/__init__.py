"""Invoices app: invoices for rentals, their fee items, email delivery and
CSV/Excel exports."""
