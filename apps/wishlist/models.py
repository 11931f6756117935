"""Model definition for the wishlist.

A ``WishlistItem`` is a bookmark a user puts on someone else's product to
come back to it later. Duplicates are prevented via a unique constraint.
"""

from __future__ import annotations

from django.db import models  # type: ignore


class WishlistItem(models.Model):
    """A product saved by a user."""

    user = models.ForeignKey(
        'users.CustomUser', on_delete=models.CASCADE, related_name='wishlist_items'
    )
    product = models.ForeignKey(
        'products.Product', on_delete=models.CASCADE, related_name='wishlisted_by'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'product')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Wishlist product {self.product_id} by user {self.user_id}"
