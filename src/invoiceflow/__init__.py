"""InvoiceFlow: monthly invoice from a Drive template to the recipient's inbox."""

__version__ = "0.1.0"
