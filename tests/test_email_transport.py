"""
Unit tests for the SMTP transport.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, patch

import aiosmtplib

from email_service.schemas.email import RenderedEmail
from email_service.services.email_transport import SMTPTransport


@pytest.fixture
def rendered():
    return RenderedEmail(
        to="ada@example.com",
        subject="Welcome to wagr!",
        html="<p>Hello</p>",
        text="Hello",
    )


@pytest.fixture
def smtp():
    return SMTPTransport(
        host="smtp.example.com",
        port=587,
        username="mailer",
        password="secret",
        from_address="wagr <noreply@wagr.app>",
        timeout=5.0,
    )


class TestSMTPTransport:

    @pytest.mark.asyncio
    async def test_send_success(self, smtp, rendered):
        with patch("email_service.services.email_transport.aiosmtplib.send", new_callable=AsyncMock) as send:
            result = await smtp.send(rendered)

        assert result is True
        send.assert_awaited_once()
        kwargs = send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 587
        assert kwargs["username"] == "mailer"
        assert kwargs["use_tls"] is False
        assert kwargs["validate_certs"] is True

    @pytest.mark.asyncio
    async def test_port_465_uses_implicit_tls(self, smtp, rendered):
        smtp.port = 465
        with patch("email_service.services.email_transport.aiosmtplib.send", new_callable=AsyncMock) as send:
            await smtp.send(rendered)

        assert send.await_args.kwargs["use_tls"] is True

    @pytest.mark.asyncio
    async def test_certificate_checks_follow_flag(self, smtp, rendered):
        smtp.reject_unauthorized = False
        with patch("email_service.services.email_transport.aiosmtplib.send", new_callable=AsyncMock) as send:
            await smtp.send(rendered)

        assert send.await_args.kwargs["validate_certs"] is False

    @pytest.mark.asyncio
    async def test_unconfigured_returns_false_without_io(self, rendered):
        transport = SMTPTransport(host=None)
        with patch("email_service.services.email_transport.aiosmtplib.send", new_callable=AsyncMock) as send:
            result = await transport.send(rendered)

        assert transport.is_configured is False
        assert result is False
        send.assert_not_called()

    @pytest.mark.asyncio
    async def test_smtp_error_returns_false(self, smtp, rendered):
        with patch(
            "email_service.services.email_transport.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPException("mailbox unavailable"),
        ):
            assert await smtp.send(rendered) is False

    @pytest.mark.asyncio
    async def test_connection_error_returns_false(self, smtp, rendered):
        with patch(
            "email_service.services.email_transport.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=ConnectionRefusedError("refused"),
        ):
            assert await smtp.send(rendered) is False

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self, smtp, rendered):
        smtp.timeout = 0.01

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        with patch("email_service.services.email_transport.aiosmtplib.send", side_effect=hang):
            assert await smtp.send(rendered) is False

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, smtp, rendered):
        with patch(
            "email_service.services.email_transport.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=ValueError("bad header"),
        ):
            with pytest.raises(ValueError):
                await smtp.send(rendered)

    def test_build_message_is_multipart(self, smtp, rendered):
        message = smtp.build_message(rendered)

        assert message["From"] == "wagr <noreply@wagr.app>"
        assert message["To"] == "ada@example.com"
        assert message["Subject"] == "Welcome to wagr!"
        assert message.get_body(preferencelist=("plain",)).get_content().strip() == "Hello"
        assert "<p>Hello</p>" in message.get_body(preferencelist=("html",)).get_content()
