"""Payments app: online card payments through Stripe and offline payments
confirmed by the product owner, guarded by short-lived payment attempts."""
