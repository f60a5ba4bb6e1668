"""Tests for the run entry point and the send confirmation gate."""
import os
import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

from invoiceflow.config.settings import InvoiceSettings, PathSettings, Settings
from invoiceflow.main import main, run_invoice

from fakes import FakeAuthClient, FakeGateway, ScriptedPrompt


class TestRunInvoice(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.settings = Settings(
            invoice=InvoiceSettings(recipient="billing@example.com"),
            paths=PathSettings(home_dir=self.test_dir)
        )
        self.gateway = FakeGateway()
        self.now = datetime(2024, 1, 15, 8, 0)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def run_with(self, answers=(), assume_yes=False):
        self.prompt = ScriptedPrompt(answers)
        return run_invoice(self.settings, self.prompt, FakeAuthClient(), self.gateway, assume_yes=assume_yes, now=self.now)

    def sent(self):
        return [call for call in self.gateway.calls if call[0] == "post_raw"]

    def test_confirmed_send(self):
        """Test answering yes sends the exported bytes."""
        for answer in ("y", "YES", "  yes \n"):
            with self.subTest(answer=answer):
                self.gateway = FakeGateway()
                self.assertTrue(self.run_with([answer]))

                sent = self.sent()
                self.assertEqual(len(sent), 1)
                self.assertIn(b"Invoice-2024-01-15.pdf", sent[0][3])

    def test_declined_send(self):
        """Test any other answer skips the send without raising."""
        for answer in ("n", "", "yep", "no"):
            with self.subTest(answer=answer):
                self.gateway = FakeGateway()
                self.assertFalse(self.run_with([answer]))
                self.assertEqual(self.sent(), [])

        # The invoice is still produced and saved
        self.assertTrue((self.settings.paths.output_dir / "Invoice-2024-01-15").exists())

    def test_prompt_shows_sender_and_recipient(self):
        """Test the confirmation shows who sends to whom."""
        self.run_with(["n"])

        summary = "\n".join(self.prompt.shown)
        self.assertIn("Jane Doe <jane@example.com>", summary)
        self.assertIn("billing@example.com", summary)

    def test_assume_yes_skips_prompt(self):
        """Test --yes sends without asking."""
        self.assertTrue(self.run_with(assume_yes=True))
        self.assertEqual(self.prompt.shown, [])
        self.assertEqual(len(self.sent()), 1)

    def test_confirmation_disabled_in_settings(self):
        """Test confirm_before_send: false sends without asking."""
        self.settings.invoice.confirm_before_send = False

        self.assertTrue(self.run_with())
        self.assertEqual(len(self.sent()), 1)


CONFIG_YAML = """
oauth:
  client_id: client-123.apps.googleusercontent.com
  client_secret: shh
invoice:
  recipient: billing@example.com
paths:
  home_dir: {home}
  logs_dir: {logs}
"""


class TestMain(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        env = {k: v for k, v in os.environ.items() if not k.startswith("INVOICEFLOW_")}
        self.env = mock.patch.dict(os.environ, env, clear=True)
        self.env.start()

    def tearDown(self):
        self.env.stop()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def write_config(self, logs_dir):
        config = self.test_dir / "config.yaml"
        config.write_text(CONFIG_YAML.format(home=self.test_dir, logs=logs_dir), encoding="utf-8")
        return str(config)

    def test_missing_config_exits_nonzero(self):
        """Test an unusable config ends the process with status 1."""
        with self.assertRaises(SystemExit) as ctx:
            main(["run", "--config", str(self.test_dir / "missing.yaml")])
        self.assertEqual(ctx.exception.code, 1)

    def test_os_failure_exits_nonzero(self):
        """Test an OS error (log directory under a regular file) exits with status 1."""
        blocker = self.test_dir / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        config = self.write_config(blocker / "logs")

        with self.assertRaises(SystemExit) as ctx:
            main(["run", "--config", config])
        self.assertEqual(ctx.exception.code, 1)

    def test_authorize_with_closed_input_exits_nonzero(self):
        """Test authorize exits with status 1 when stdin ends before a code is pasted."""
        config = self.write_config(self.test_dir / "logs")

        with mock.patch("builtins.input", side_effect=EOFError), \
                mock.patch("builtins.print"):
            with self.assertRaises(SystemExit) as ctx:
                main(["authorize", "--config", config])

        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse((self.test_dir / "tokens.json").exists())


if __name__ == "__main__":
    unittest.main()
