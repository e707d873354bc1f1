import unittest
from unittest.mock import patch

from nuoutdated.__main__ import main, parse_args
from nuoutdated.core.errors import GraphUnavailable
from nuoutdated.core.model import PrereleasePolicy, VersionLock


class TestParseArgs(unittest.TestCase):

    def test_defaults(self):
        options = parse_args([])

        self.assertIsNone(options.path)
        self.assertFalse(options.include_transitive)
        self.assertEqual(options.transitive_depth, 1)
        self.assertEqual(options.prerelease, PrereleasePolicy.AUTO)
        self.assertEqual(options.version_lock, VersionLock.NONE)
        self.assertFalse(options.show_only_outdated)
        self.assertTrue(options.use_tui)

    def test_all_flags(self):
        options = parse_args([
            "src/App", "-t", "-td", "3", "-pr", "always", "-vl", "Major",
            "-o", "--include-auto-references", "--no-tui",
        ])

        self.assertEqual(options.path, "src/App")
        self.assertTrue(options.include_transitive)
        self.assertEqual(options.transitive_depth, 3)
        self.assertEqual(options.prerelease, PrereleasePolicy.ALWAYS)
        self.assertEqual(options.version_lock, VersionLock.MAJOR)
        self.assertTrue(options.show_only_outdated)
        self.assertTrue(options.include_auto_references)
        self.assertFalse(options.use_tui)

    def test_invalid_policy_is_rejected(self):
        with self.assertRaises(SystemExit):
            parse_args(["-vl", "Patch"])


class TestMain(unittest.TestCase):

    @patch("nuoutdated.__main__.configure_logging")
    def test_invalid_depth_exits_with_error(self, mock_logging):
        self.assertEqual(main(["-td", "0", "--no-tui"]), 1)
        mock_logging.assert_not_called()

    @patch("nuoutdated.__main__.configure_logging")
    @patch("nuoutdated.__main__.analyze_project")
    def test_graph_unavailable_exits_with_error(self, mock_analyze, mock_logging):
        mock_analyze.side_effect = GraphUnavailable("no graph")

        self.assertEqual(main(["--no-tui"]), 1)

    @patch("nuoutdated.__main__.configure_logging")
    @patch("nuoutdated.__main__.print_report")
    @patch("nuoutdated.__main__.analyze_project")
    def test_console_run(self, mock_analyze, mock_print, mock_logging):
        mock_analyze.return_value = []

        self.assertEqual(main(["--no-tui"]), 0)
        mock_print.assert_called_once()
