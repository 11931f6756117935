from io import StringIO

import pytest
from django.core.management import call_command

DOMAIN_APPS = (
    "users",
    "products",
    "rentals",
    "payments",
    "invoices",
    "returns",
    "notifications",
    "wishlist",
)


@pytest.mark.django_db
def test_models_have_no_unmigrated_changes():
    out = StringIO()

    call_command("makemigrations", *DOMAIN_APPS, "--check", "--dry-run", stdout=out)

    assert "No changes detected" in out.getvalue()
