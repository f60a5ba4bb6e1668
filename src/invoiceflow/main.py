"""Main entry point."""
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from invoiceflow.auth.client import AuthClient
from invoiceflow.auth.store import CredentialStore
from invoiceflow.config.settings import Settings
from invoiceflow.drive.gateway import DocumentGateway
from invoiceflow.drive.models import InvoiceArtifact, PipelineRequest
from invoiceflow.mail.composer import EmailComposer
from invoiceflow.orchestrator.pipeline import PipelineOrchestrator
from invoiceflow.utils.exceptions import (
    AuthServerError,
    ConfigError,
    InvoiceFlowError,
    PartialRunError,
    ScopeMismatchError
)
from invoiceflow.utils.logger import configure_file_logging, get_logger, set_run_context
from invoiceflow.utils.prompt import ConsolePrompt, confirm

logger = get_logger()


def _load_and_validate_config(config_path: Optional[str]) -> Settings:
    """Load and validate configuration."""
    settings = Settings.load(Path(config_path) if config_path else None)

    is_valid, message = settings.validate()
    if not is_valid:
        raise ConfigError(f"Invalid configuration: {message}")

    configure_file_logging(
        settings.paths.logs_dir,
        settings.log_level,
        settings.log_max_file_size_mb,
        settings.log_backup_count
    )
    logger.info("Configuration loaded successfully")
    return settings


def _build_auth_client(settings: Settings) -> AuthClient:
    store = CredentialStore(settings.paths.token_file)
    return AuthClient(settings.oauth, store, timeout=settings.network.request_timeout_seconds)


def run_invoice(
    settings: Settings,
    prompt,
    auth_client: AuthClient,
    gateway: DocumentGateway,
    assume_yes: bool = False,
    now: Optional[datetime] = None
) -> bool:
    """
    Produce today's invoice and email it.

    Returns:
        True if the email was sent, False if the operator declined
    """
    request = PipelineRequest.for_date(settings.invoice, now or datetime.now())
    set_run_context(request.iso_date)

    credential = auth_client.load_or_bootstrap(prompt)
    orchestrator = PipelineOrchestrator(settings, auth_client, gateway, credential)
    artifact = orchestrator.run(request)

    identity = orchestrator.fetch_identity()
    composer = EmailComposer(gateway, settings.invoice.boundary, settings.invoice.name_prefix)
    message = composer.compose(identity, artifact.data, request.iso_date, settings.invoice.recipient)

    if not _confirmed(settings, prompt, artifact, message.sender, message.recipient, assume_yes):
        logger.info(f"Send declined; invoice kept at {artifact.local_path}")
        return False

    composer.send(message, orchestrator.credential.access_token)
    return True


def _confirmed(settings: Settings, prompt, artifact: InvoiceArtifact, sender: str, recipient: str, assume_yes: bool) -> bool:
    if assume_yes or not settings.invoice.confirm_before_send:
        return True
    prompt.show(
        f"Invoice:  {artifact.document_ref.name} ({artifact.size} bytes)\n"
        f"Saved to: {artifact.local_path}\n"
        f"From:     {sender}\n"
        f"To:       {recipient}"
    )
    return confirm(prompt, "Send this invoice?")


def main(argv=None):
    """Main entry point for InvoiceFlow."""
    parser = argparse.ArgumentParser(description="InvoiceFlow monthly invoice sender")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "authorize"],
        default="run",
        help="Command to execute (default: run)"
    )
    parser.add_argument(
        "--config",
        help="Path to config.yaml (default: $INVOICEFLOW_CONFIG or ./config.yaml)"
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Send without asking for confirmation"
    )

    args = parser.parse_args(argv)
    prompt = ConsolePrompt()

    try:
        settings = _load_and_validate_config(args.config)
        auth_client = _build_auth_client(settings)

        if args.command == "authorize":
            auth_client.bootstrap(prompt)
            logger.info(f"Credential saved to {settings.paths.token_file}")
            return

        logger.info("InvoiceFlow run starting...")
        gateway = DocumentGateway(settings.network)
        run_invoice(settings, prompt, auth_client, gateway, assume_yes=args.yes)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        sys.exit(130)
    except PartialRunError as e:
        logger.critical(f"Run incomplete, manual cleanup needed: {e}")
        sys.exit(1)
    except ScopeMismatchError as e:
        logger.critical(f"{e}. Grant every requested permission and run 'invoiceflow authorize' again.")
        sys.exit(1)
    except AuthServerError as e:
        logger.critical(f"Authorization server rejected the request: {e}. Try 'invoiceflow authorize'.")
        sys.exit(1)
    except InvoiceFlowError as e:
        logger.critical(f"Fatal error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
        sys.exit(1)
    finally:
        set_run_context(None)


if __name__ == "__main__":
    main()
