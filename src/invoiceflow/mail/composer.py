"""Builds the invoice email and hands it to Gmail."""
from dataclasses import dataclass, field
from email import policy
from email.headerregistry import Address
from email.message import EmailMessage

from invoiceflow.drive.gateway import DocumentGateway
from invoiceflow.drive.models import Identity
from invoiceflow.utils.logger import get_logger

logger = get_logger()

GMAIL_SEND_URI = "https://gmail.googleapis.com/upload/gmail/v1/users/me/messages/send?uploadType=media"


@dataclass(frozen=True)
class MimeMessage:
    """A serialized RFC 822 message, CRLF line endings throughout."""
    raw: bytes = field(repr=False)
    sender: str
    recipient: str
    subject: str
    filename: str

    @property
    def content_length(self) -> int:
        return len(self.raw)


def attachment_filename(name_prefix: str, iso_date: str) -> str:
    return f"{name_prefix}-{iso_date}.pdf"


def invoice_subject(identity: Identity, iso_date: str) -> str:
    return f"Invoice {iso_date} from {identity.display_name}"


class EmailComposer:
    """Composes the multipart invoice message and sends it through the gateway."""

    def __init__(self, gateway: DocumentGateway, boundary: str, name_prefix: str = "Invoice"):
        self.gateway = gateway
        self.boundary = boundary
        self.name_prefix = name_prefix

    def compose(self, identity: Identity, pdf_bytes: bytes, iso_date: str, recipient: str) -> MimeMessage:
        """
        Build the outbound message.

        Args:
            identity: Sending account, used for From and the subject line
            pdf_bytes: Exported invoice, attached verbatim as base64
            iso_date: Run date, used in the subject and attachment name
            recipient: Address for the To header

        Returns:
            MimeMessage whose ``raw`` is ready to POST as message/rfc822
        """
        sender = str(Address(identity.display_name, addr_spec=identity.email_address))
        subject = invoice_subject(identity, iso_date)
        filename = attachment_filename(self.name_prefix, iso_date)

        # policy.SMTP serializes with CRLF whatever the platform's line ending
        message = EmailMessage(policy=policy.SMTP)
        message["From"] = sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(
            f"Hello,\n\n"
            f"Please find attached the invoice for {iso_date}.\n\n"
            f"Regards,\n"
            f"{identity.display_name}\n"
        )
        message.add_attachment(pdf_bytes, maintype="application", subtype="pdf", filename=filename)
        message.set_boundary(self.boundary)

        return MimeMessage(
            raw=message.as_bytes(),
            sender=sender,
            recipient=recipient,
            subject=subject,
            filename=filename
        )

    def send(self, message: MimeMessage, token: str) -> bytes:
        """POST the message to Gmail. Not retried: a retry could send it twice."""
        headers = {
            "Content-Type": "message/rfc822",
            "Content-Length": str(message.content_length)
        }
        logger.info(f"Sending '{message.subject}' to {message.recipient} ({message.content_length} bytes)")
        response = self.gateway.post_raw(token, GMAIL_SEND_URI, message.raw, headers, "send email")
        logger.info(f"Email sent to {message.recipient}")
        return response
