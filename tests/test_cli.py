#!/usr/bin/env python3
"""
Tests for the command-line interface and configuration loader
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr
from unittest.mock import patch
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from attodo import cli
from attodo.config import load_env_file


class TestLoadEnvFile(unittest.TestCase):
    """Test cases for load_env_file"""

    def test_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "settings.env")
            with open(path, "w") as f:
                f.write("# comment\n\nATTODO_TEST_KEY = some=value\nnot a setting\n")

            try:
                self.assertTrue(load_env_file(path))
                self.assertEqual(os.environ["ATTODO_TEST_KEY"], "some=value")
            finally:
                os.environ.pop("ATTODO_TEST_KEY", None)

    def test_quoted_and_exported_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "settings.env")
            with open(path, "w") as f:
                f.write('ATTODO_TEST_ZONE="America/New_York"\n'
                        "export ATTODO_TEST_DID='did:plc:abc'\n"
                        'ATTODO_TEST_LONE="quote\n')

            try:
                self.assertTrue(load_env_file(path))
                self.assertEqual(os.environ["ATTODO_TEST_ZONE"], "America/New_York")
                self.assertEqual(os.environ["ATTODO_TEST_DID"], "did:plc:abc")
                self.assertEqual(os.environ["ATTODO_TEST_LONE"], '"quote')
            finally:
                for key in ("ATTODO_TEST_ZONE", "ATTODO_TEST_DID", "ATTODO_TEST_LONE"):
                    os.environ.pop(key, None)

    def test_missing_file(self):
        self.assertFalse(load_env_file("/nonexistent/settings.env"))


class TestResolveReference(unittest.TestCase):
    """Test cases for resolve_reference"""

    def test_naive_string_placed_in_zone(self):
        reference = cli.resolve_reference("2024-11-20T12:00:00", "America/New_York")

        self.assertEqual(reference.hour, 12)
        self.assertEqual(reference.utcoffset().total_seconds(), -5 * 3600)

    def test_aware_string_converted(self):
        reference = cli.resolve_reference("2024-11-20T12:00:00+00:00", "Asia/Tokyo")
        self.assertEqual(reference.hour, 21)

    def test_default_is_now(self):
        reference = cli.resolve_reference(None, "UTC")
        self.assertIsNotNone(reference.tzinfo)

    def test_unknown_zone(self):
        with self.assertRaises(ValueError):
            cli.resolve_reference(None, "Mars/Olympus_Mons")

    def test_bad_reference(self):
        with self.assertRaises(ValueError):
            cli.resolve_reference("yesterday-ish", "UTC")


class TestMain(unittest.TestCase):
    """Test cases for main"""

    def run_main(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_prints_parse_result(self):
        code, out, _ = self.run_main(
            "tomorrow at 3:30pm doctor appointment",
            "--reference", "2024-11-20T12:00:00", "--timezone", "UTC", "--tags", "health",
        )

        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(payload["parse"]["due_date"], "2024-11-21T15:30:00+00:00")
        self.assertEqual(payload["parse"]["cleaned_title"], "doctor appointment")
        self.assertEqual(payload["record"]["dueDate"], "2024-11-21T15:30:00Z")
        self.assertEqual(payload["record"]["tags"], ["health"])

    def test_explicit_due_date(self):
        code, out, _ = self.run_main(
            "tomorrow call mom", "--reference", "2024-11-20T12:00:00",
            "--timezone", "UTC", "--due-date", "2024-12-01", "--due-time", "08:00",
        )

        self.assertEqual(code, 0)
        record = json.loads(out)["record"]
        self.assertEqual(record["title"], "tomorrow call mom")
        self.assertEqual(record["dueDate"], "2024-12-01T08:00:00Z")

    def test_unknown_timezone(self):
        code, _, err = self.run_main("call mom", "--timezone", "Nowhere/Land")

        self.assertEqual(code, 1)
        self.assertIn("Unknown time zone", err)

    def test_empty_title(self):
        code, _, err = self.run_main("  ")

        self.assertEqual(code, 1)
        self.assertIn("Title is required", err)

    def test_missing_config(self):
        code, _, err = self.run_main("call mom", "--config", "/nonexistent/settings.env")

        self.assertEqual(code, 1)
        self.assertIn("Config file not found", err)

    @patch("attodo.pds_client.create_client_from_env")
    def test_create(self, mock_factory):
        mock_factory.return_value.create_task.return_value = {
            "success": True, "uri": "at://did:plc:abc/app.attodo.task/3kxyz", "rkey": "3kxyz"
        }

        code, out, _ = self.run_main(
            "friday meeting", "--reference", "2024-11-20T12:00:00", "--timezone", "UTC", "--create",
        )

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["rkey"], "3kxyz")
        record = mock_factory.return_value.create_task.call_args[0][0]
        self.assertEqual(record["title"], "meeting")
        self.assertEqual(record["dueDate"], "2024-11-22T00:00:00Z")

    @patch("attodo.pds_client.create_client_from_env")
    def test_create_failure(self, mock_factory):
        mock_factory.return_value.create_task.return_value = {
            "success": False, "error": "HTTP 503: Service Unavailable"
        }

        code, _, err = self.run_main("friday meeting", "--create")

        self.assertEqual(code, 1)
        self.assertIn("(503)", err)

    @patch("attodo.pds_client.create_client_from_env", side_effect=ValueError("Missing required PDS configuration"))
    def test_create_without_config(self, _mock_factory):
        code, _, err = self.run_main("friday meeting", "--create")

        self.assertEqual(code, 1)
        self.assertIn("Missing required PDS configuration", err)


if __name__ == '__main__':
    unittest.main()
