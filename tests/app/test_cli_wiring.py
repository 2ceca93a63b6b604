"""
Tests for process wiring and the command line.

The feed client is a fake; the notifier and retriever are real with fake
transports.
"""

import io
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from likelocker.app import STARTUP_MESSAGE, StartupError, build_archiver, run
from likelocker.cli import EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_OK, build_parser, main
from likelocker.downloader.cache import CacheLoadError
from likelocker.feed.client import AuthenticationError, FeedRequestError
from likelocker.feed.embeds import ImagesEmbed
from likelocker.feed.models import LikedItem, LikesPage
from likelocker.fs.hashing import compute_content_key
from likelocker.notify.ntfy import NtfyNotifier
from likelocker.settings.models import Credentials, Settings


class FakeClient:
    def __init__(self, page=None, login_error=None):
        self.page = page or LikesPage(items=())
        self.login_error = login_error
        self.logins = []
        self.requests = []

    def create_session(self, identifier, password):
        self.logins.append((identifier, password))
        if self.login_error is not None:
            raise self.login_error

    def get_actor_likes(self, actor, *, cursor=None, limit=50):
        self.requests.append((actor, cursor, limit))
        return self.page if cursor is None else LikesPage(items=())


class FakeResponse:
    status = 200

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class NtfyOpener:
    def __init__(self):
        self.bodies = []

    def __call__(self, req, timeout=None):
        self.bodies.append(req.data.decode("utf-8"))
        return FakeResponse()


class ArchiverTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.fetched = []
        self.ntfy = NtfyOpener()

    def tearDown(self):
        self._tmp.cleanup()

    def settings(self, **overrides):
        values = dict(
            credentials=Credentials("alice.bsky.social", "app-pass"),
            download_dir=self.root / "media" / "likes",
            cache_file=self.root / "cache.txt",
            download_limit=10,
            ntfy_topic="my-likes",
        )
        values.update(overrides)
        return Settings(**values)

    def fetch(self, url):
        self.fetched.append(url)
        return io.BytesIO(b"bytes")

    def build(self, client, **overrides):
        return build_archiver(
            self.settings(**overrides),
            client=client,
            fetch_func=self.fetch,
            transcode_func=lambda url, path: Path(path).write_bytes(b"mp4"),
            notifier=NtfyNotifier("my-likes", opener=self.ntfy),
            sleep=lambda seconds: None,
        )


class TestBuildArchiver(ArchiverTestCase):
    def test_creates_directory_logs_in_and_reconciles(self):
        existing = compute_content_key("https://cdn/old") + ".png"
        storage = self.root / "media" / "likes"
        storage.mkdir(parents=True)
        (storage / existing).write_bytes(b"old")
        client = FakeClient()

        archiver = self.build(client)

        self.assertTrue(storage.is_dir())
        self.assertEqual(client.logins, [("alice.bsky.social", "app-pass")])
        self.assertIn(existing, archiver.cache)
        self.assertEqual((self.root / "cache.txt").read_text(encoding="utf-8"), existing + "\n")

    def test_authentication_failure_propagates(self):
        with self.assertRaises(AuthenticationError):
            self.build(FakeClient(login_error=AuthenticationError("authentication failed")))

    def test_unreadable_cache_propagates(self):
        (self.root / "cache.txt").mkdir()
        with self.assertRaises(CacheLoadError):
            self.build(FakeClient())

    def test_directory_creation_failure(self):
        (self.root / "media").write_text("file in the way", encoding="utf-8")
        with self.assertRaises(StartupError):
            self.build(FakeClient())


class TestRun(ArchiverTestCase):
    def test_backfill_only(self):
        page = LikesPage(items=(LikedItem("at://p1", ImagesEmbed(("https://cdn/a", "https://cdn/b"))),))
        archiver = self.build(FakeClient(page))

        report = run(archiver, backfill_only=True)

        self.assertEqual(report.downloaded, 2)
        self.assertEqual(self.fetched, ["https://cdn/a", "https://cdn/b"])
        self.assertEqual(self.ntfy.bodies, [STARTUP_MESSAGE])

    def test_backfill_then_watch(self):
        page = LikesPage(items=(LikedItem("at://p1", ImagesEmbed(("https://cdn/a",))),))
        client = FakeClient(page)
        archiver = self.build(client, poll_interval_minutes=1)

        run(archiver, max_cycles=1)

        # backfill: one page without a cursor; watch: seed + one poll
        self.assertEqual([r[1] for r in client.requests], [None, None, None])
        self.assertEqual(self.fetched, ["https://cdn/a"])

    def test_watch_only_skips_backfill(self):
        page = LikesPage(items=(LikedItem("at://p1", ImagesEmbed(("https://cdn/a",))),))
        client = FakeClient(page)
        archiver = self.build(client, watch_only=True)

        report = run(archiver, max_cycles=1)

        self.assertIsNone(report)
        self.assertEqual(self.fetched, [])
        self.assertEqual(len(client.requests), 2)

    def test_backfill_only_conflicts_with_watch_only(self):
        archiver = self.build(FakeClient(), watch_only=True)
        with self.assertRaises(StartupError):
            run(archiver, backfill_only=True)

    @patch("likelocker.app.start_health_server")
    def test_health_server_started_when_port_set(self, mock_start):
        archiver = self.build(FakeClient(), health_port=8081)
        run(archiver, backfill_only=True)
        mock_start.assert_called_once_with(8081)


BASE_ENV = {"BSKY_HANDLE": "alice.bsky.social", "BSKY_PASSWORD": "app-pass"}


@patch("likelocker.cli.configure_logging")
class TestMain(unittest.TestCase):
    def test_parser_flags(self, _logging):
        args = build_parser().parse_args(["--watch", "--backfill-only", "--log-level", "debug"])
        self.assertTrue(args.watch)
        self.assertTrue(args.backfill_only)
        self.assertEqual(args.log_level, "DEBUG")

    def test_config_error_exits_1(self, _logging):
        self.assertEqual(main([], environ={}), EXIT_FAILURE)

    @patch("likelocker.cli.run")
    @patch("likelocker.cli.build_archiver")
    def test_clean_exit(self, mock_build, mock_run, _logging):
        self.assertEqual(main(["--watch"], environ=BASE_ENV), EXIT_OK)

        settings = mock_build.call_args.args[0]
        self.assertTrue(settings.watch_only)
        mock_run.assert_called_once_with(mock_build.return_value, backfill_only=False)

    @patch("likelocker.cli.run")
    @patch("likelocker.cli.build_archiver")
    def test_fatal_errors_exit_1(self, mock_build, mock_run, _logging):
        for error in (
            AuthenticationError("authentication failed"),
            CacheLoadError("bad cache"),
            StartupError("no directory"),
        ):
            with self.subTest(error=type(error).__name__):
                mock_build.side_effect = error
                self.assertEqual(main([], environ=BASE_ENV), EXIT_FAILURE)

        mock_build.side_effect = None
        mock_run.side_effect = FeedRequestError("failed to fetch likes")
        self.assertEqual(main([], environ=BASE_ENV), EXIT_FAILURE)

    @patch("likelocker.cli.run")
    @patch("likelocker.cli.build_archiver")
    def test_backfill_only_with_watch_rejected_before_login(self, mock_build, mock_run, _logging):
        for argv, environ in (
            (["--backfill-only", "--watch"], BASE_ENV),
            (["--backfill-only"], dict(BASE_ENV, WATCH_ONLY="true")),
        ):
            with self.subTest(argv=argv):
                self.assertEqual(main(argv, environ=environ), EXIT_FAILURE)
        mock_build.assert_not_called()
        mock_run.assert_not_called()

    @patch("likelocker.cli.run")
    @patch("likelocker.cli.build_archiver")
    def test_credentials_from_env_file(self, mock_build, mock_run, _logging):
        with tempfile.TemporaryDirectory() as tmp:
            env_file = Path(tmp) / ".env"
            env_file.write_text(
                "BSKY_HANDLE=alice.bsky.social\nBSKY_PASSWORD=from-file\nDOWNLOAD_LIMIT=5\n",
                encoding="utf-8",
            )
            with patch.dict("os.environ", {"DOWNLOAD_LIMIT": "7"}, clear=True):
                self.assertEqual(main(["--env-file", str(env_file)]), EXIT_OK)

        settings = mock_build.call_args.args[0]
        self.assertEqual(settings.credentials.app_password, "from-file")
        self.assertEqual(settings.download_limit, 7)

    @patch("likelocker.cli.run")
    @patch("likelocker.cli.build_archiver")
    def test_missing_env_file_is_not_an_error(self, mock_build, mock_run, _logging):
        with tempfile.TemporaryDirectory() as tmp:
            with patch.dict("os.environ", BASE_ENV, clear=True):
                self.assertEqual(main(["--env-file", str(Path(tmp) / ".env")]), EXIT_OK)
        self.assertEqual(mock_build.call_args.args[0].credentials.app_password, "app-pass")

    @patch("likelocker.cli.run", side_effect=KeyboardInterrupt)
    @patch("likelocker.cli.build_archiver")
    def test_interrupt_exits_130(self, mock_build, mock_run, _logging):
        self.assertEqual(main([], environ=BASE_ENV), EXIT_INTERRUPTED)


if __name__ == "__main__":
    unittest.main()
