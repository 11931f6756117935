"""Dashboard app: read-only aggregates for owners and customers."""
