"""Wishlist app: products a user saved for later."""
