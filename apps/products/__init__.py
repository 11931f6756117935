"""Products app package.

Products are the items owners list for rent. A product tracks its own
availability status which rental and return workflows flip between
``available`` and ``rented``.
"""
