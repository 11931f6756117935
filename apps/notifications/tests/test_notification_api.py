"""Integration tests for notification endpoints."""

from __future__ import annotations

from unittest.mock import patch

from django.core import mail
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.notifications.models import Notification
from apps.notifications.services import (
    _notify,
    create_notification,
    send_email_notification,
)
from apps.users.models import User


class NotificationAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="user@example.com", password="UserPass12345")
        self.other = User.objects.create_user(email="other@example.com", password="OtherPass1234")
        self.first = create_notification(self.user, Notification.Type.GENERAL, "Hello", "First")
        self.second = create_notification(self.user, Notification.Type.GENERAL, "Hi", "Second")
        create_notification(self.other, Notification.Type.GENERAL, "Not yours", "Hidden")
        self.client.force_authenticate(self.user)

    def test_list_returns_own_notifications_with_unread_count(self) -> None:
        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["results"]), 2)
        self.assertEqual(response.data["unread_count"], 2)

    def test_list_limit_and_unread_filter(self) -> None:
        self.first.mark_read()

        response = self.client.get(reverse("notification-list"), {"unread_only": "true"})
        self.assertEqual([n["id"] for n in response.data["results"]], [self.second.id])

        response = self.client.get(reverse("notification-list"), {"limit": "1"})
        self.assertEqual(len(response.data["results"]), 1)

    def test_create_assigns_current_user(self) -> None:
        response = self.client.post(
            reverse("notification-list"),
            {"type": "general", "title": "Reminder", "message": "Check the bike"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(Notification.objects.get(pk=response.data["id"]).user, self.user)

    def test_mark_single_and_bulk_read(self) -> None:
        response = self.client.post(reverse("notification-mark-read", args=[self.first.id]))
        self.assertEqual(response.data, {"status": "read"})
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

        response = self.client.patch(
            reverse("notification-mark-read-bulk"), {"mark_all": True}, format="json"
        )
        self.assertEqual(response.data, {"updated": 1, "unread_count": 0})
        self.assertEqual(
            Notification.objects.filter(user=self.other, is_read=False).count(), 1
        )

    def test_bulk_mark_read_requires_ids_or_mark_all(self) -> None:
        response = self.client.patch(reverse("notification-mark-read-bulk"), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unread_count_and_foreign_notification(self) -> None:
        response = self.client.get(reverse("notification-unread-count"))
        self.assertEqual(response.data, {"unread_count": 2})

        foreign = Notification.objects.get(user=self.other)
        response = self.client.delete(reverse("notification-detail", args=[foreign.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_anonymous_is_rejected(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class EmailNotificationTests(APITestCase):
    @patch("apps.notifications.services.send_mail", side_effect=OSError("SMTP down"))
    def test_mail_failure_is_reported_not_raised(self, _send_mail) -> None:
        sent = send_email_notification(
            "user@example.com", "Subject", None, {"message": "Body"}
        )

        self.assertFalse(sent)

    def test_user_text_is_escaped_in_html_body(self) -> None:
        user = User.objects.create_user(
            email="mallory@example.com", name="<b>Mallory</b>", password="MalloryPass123"
        )

        results = _notify(
            user,
            Notification.Type.GENERAL,
            "Heads up",
            'Your rental of "<a href="https://evil.example">Drill</a>" starts soon.',
        )

        self.assertTrue(results["email"])
        message = mail.outbox[0]
        html_body = message.alternatives[0][0]
        self.assertNotIn('<a href="https://evil.example">', html_body)
        self.assertIn("&lt;a href=&quot;https://evil.example&quot;&gt;Drill&lt;/a&gt;", html_body)
        self.assertIn("Hello, &lt;b&gt;Mallory&lt;/b&gt;!", html_body)
        self.assertIn('"<a href="https://evil.example">Drill</a>"', message.body)
