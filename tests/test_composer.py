"""Tests for the invoice email composer."""
import base64
import email
import unittest
from email import policy

from invoiceflow.drive.models import Identity
from invoiceflow.mail.composer import GMAIL_SEND_URI, EmailComposer

from fakes import FakeGateway

BOUNDARY = "invoiceflow-test-boundary"
PDF_BYTES = b"%PDF-1.4\n" + bytes(range(256)) * 40 + b"\n%%EOF\n"


class TestEmailComposer(unittest.TestCase):
    """Test EmailComposer functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.gateway = FakeGateway()
        self.composer = EmailComposer(self.gateway, BOUNDARY)
        self.identity = Identity("Jane Doe", "jane@example.com")
        self.message = self.composer.compose(self.identity, PDF_BYTES, "2024-01-15", "billing@example.com")

    def parsed(self):
        return email.message_from_bytes(self.message.raw, policy=policy.default)

    def test_headers(self):
        """Test From, To and Subject are derived from identity and date."""
        parsed = self.parsed()

        self.assertEqual(parsed["From"], "Jane Doe <jane@example.com>")
        self.assertEqual(parsed["To"], "billing@example.com")
        self.assertEqual(parsed["Subject"], "Invoice 2024-01-15 from Jane Doe")
        self.assertEqual(self.message.subject, "Invoice 2024-01-15 from Jane Doe")

    def test_subject_is_deterministic(self):
        """Test composing twice yields identical bytes."""
        again = self.composer.compose(self.identity, PDF_BYTES, "2024-01-15", "billing@example.com")
        self.assertEqual(again.raw, self.message.raw)

    def test_multipart_with_fixed_boundary(self):
        """Test the body is multipart/mixed using the configured boundary."""
        parsed = self.parsed()

        self.assertEqual(parsed.get_content_type(), "multipart/mixed")
        self.assertEqual(parsed.get_boundary(), BOUNDARY)
        self.assertIn(f"--{BOUNDARY}--".encode("ascii"), self.message.raw)

    def test_attachment_round_trip(self):
        """Test parsing the message recovers exactly the attached bytes."""
        parts = list(self.parsed().iter_parts())

        self.assertEqual(len(parts), 2)
        self.assertEqual(parts[0].get_content_type(), "text/plain")
        self.assertIn("2024-01-15", parts[0].get_content())

        attachment = parts[1]
        self.assertEqual(attachment.get_content_type(), "application/pdf")
        self.assertEqual(attachment["Content-Transfer-Encoding"], "base64")
        self.assertEqual(attachment.get_content_disposition(), "attachment")
        self.assertEqual(attachment.get_filename(), "Invoice-2024-01-15.pdf")
        self.assertEqual(attachment.get_content(), PDF_BYTES)

    def test_attachment_is_base64_text(self):
        """Test the raw attachment section is the base64 of the bytes."""
        encoded = base64.b64encode(PDF_BYTES)
        body = self.message.raw.split(b"filename=")[1].split(b"\r\n\r\n", 1)[1]
        body = body.split(f"\r\n--{BOUNDARY}".encode("ascii"))[0]
        self.assertEqual(body.replace(b"\r\n", b""), encoded)

    def test_crlf_line_endings(self):
        """Test every line ends with CRLF and there are no bare CR or LF."""
        raw = self.message.raw

        self.assertIn(b"\r\n", raw)
        stripped = raw.replace(b"\r\n", b"")
        self.assertNotIn(b"\n", stripped)
        self.assertNotIn(b"\r", stripped)

    def test_content_length_matches_message(self):
        """Test the length is that of the whole message, not the PDF."""
        self.assertEqual(self.message.content_length, len(self.message.raw))
        self.assertNotEqual(self.message.content_length, len(PDF_BYTES))

    def test_send_posts_raw_message(self):
        """Test send POSTs message/rfc822 with the composed length."""
        self.composer.send(self.message, "tok-9")

        name, token, uri, body, headers = self.gateway.calls[-1]
        self.assertEqual(name, "post_raw")
        self.assertEqual(token, "tok-9")
        self.assertEqual(uri, GMAIL_SEND_URI)
        self.assertIs(body, self.message.raw)
        self.assertEqual(headers["Content-Type"], "message/rfc822")
        self.assertEqual(headers["Content-Length"], str(len(self.message.raw)))

    def test_non_ascii_display_name(self):
        """Test a non-ASCII sender name survives encoding."""
        message = self.composer.compose(Identity("Zoë Müller", "zoe@example.com"), b"x", "2024-01-15", "a@b.c")
        parsed = email.message_from_bytes(message.raw, policy=policy.default)

        self.assertEqual(parsed["From"].addresses[0].display_name, "Zoë Müller")
        self.assertEqual(parsed["Subject"], "Invoice 2024-01-15 from Zoë Müller")


if __name__ == "__main__":
    unittest.main()
