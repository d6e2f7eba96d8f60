"""
Unit tests for the command line entry point.
"""

import pytest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_livereload.cli import build_parser, main


class TestCli:
    """Test cases for the CLI."""

    def test_defaults(self):
        """Test directory and port defaults."""
        args = build_parser().parse_args([])
        assert args.directory == "."
        assert args.port == 3000

    def test_positional_arguments(self):
        """Test directory then port as positionals."""
        args = build_parser().parse_args(["public", "8080"])
        assert args.directory == "public"
        assert args.port == 8080

    def test_invalid_port(self):
        """Test a non-numeric port is rejected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([".", "http"])

    @patch('service_livereload.app.main.LiveReloadService.run')
    def test_main_runs_service(self, mock_run, tmp_path, capsys):
        """Test main builds the service for the directory and starts it."""
        assert main([str(tmp_path), "4000"]) == 0

        mock_run.assert_called_once()
        output = capsys.readouterr().out
        assert "http://localhost:4000" in output
        assert "http://localhost:4000/sse/reload" in output

    @patch('service_livereload.app.main.LiveReloadService.run')
    def test_missing_directory_is_fatal(self, mock_run, tmp_path):
        """Test a directory that does not exist stops startup."""
        assert main([str(tmp_path / "absent")]) == 1
        mock_run.assert_not_called()
