"""
tests/test_email_service.py — Notification Template Tests
===========================================================
"""

from __future__ import annotations

import logging

from civicvoice.services import email_service


class TestTemplates:
    def test_user_approval(self, make_user):
        user = make_user("a@example.com", name="Ana")
        msg = email_service.user_approval_email(user, site_name="Citizen Suggestion Platform")
        assert msg.to == "a@example.com"
        assert msg.subject == "Your Account Has Been Approved"
        assert "Hello Ana" in msg.body
        assert "Citizen Suggestion Platform" in msg.body
        assert msg.is_html is True

    def test_suggestion_approval(self, make_suggestion, repo):
        s = make_suggestion("Plant mangroves along the coast")
        author = repo.get_user_by_id(s.author_id)
        msg = email_service.suggestion_approval_email(author, s)
        assert msg.to == author.email
        assert "Plant mangroves along the coast" in msg.body

    def test_forward_to_lawmakers(self, make_suggestion):
        s = make_suggestion(upvotes=42)
        msg = email_service.suggestion_to_lawmakers_email(s, to="lawmakers@example.gov")
        assert msg.to == "lawmakers@example.gov"
        assert msg.subject == f"Popular Citizen Suggestion: {s.title}"
        assert "<strong>Upvotes:</strong> 42" in msg.body
        assert "Maria Clara" in msg.body

    def test_user_text_is_escaped(self, make_user):
        user = make_user("x@example.com", name="<script>alert(1)</script>")
        msg = email_service.user_approval_email(user, site_name="Portal")
        assert "<script>" not in msg.body
        assert "&lt;script&gt;" in msg.body


class TestSendEmail:
    def test_send_logs_and_succeeds(self, caplog):
        msg = email_service.EmailMessage(to="a@example.com", subject="Hi", body="<p>Hi</p>")
        with caplog.at_level(logging.INFO, logger="civicvoice.services.email_service"):
            assert email_service.send_email(msg) is True
        assert "a@example.com" in caplog.text
