"""
Tests for content keys and media filenames.

- The content key is the SHA-256 of the URL, not of the bytes
- Extensions come from the URL path, then the playlist marker, then the kind
- Streamed videos always end in .mp4
"""

import unittest

from likelocker.feed.models import MediaKind
from likelocker.fs.hashing import CONTENT_KEY_LENGTH, compute_content_key
from likelocker.fs.naming import (
    filename_for_reference,
    generate_media_filename,
    get_extension_from_url,
    is_playlist_url,
    parse_media_filename,
    resolve_extension,
)


IMAGE_URL = "https://cdn.bsky.app/img/feed_fullsize/plain/did:plc:abc/bafkreiimg1@jpeg"
IMAGE_KEY = "2389dee1749e3f4a93e7ca432a0ce1ea90dc1b1e27db4b5a69d886259f9fd19c"

PLAYLIST_URL = "https://video.bsky.app/watch/did%3Aplc%3Aabc/bafkreivid/playlist.m3u8"
PLAYLIST_KEY = "8699486b09af6d7726cd6c6e1f31bc3b217a16cfd11d98371455ba3b3e466a29"


class TestContentKey(unittest.TestCase):
    def test_key_is_sha256_of_url(self):
        self.assertEqual(compute_content_key(IMAGE_URL), IMAGE_KEY)
        self.assertEqual(compute_content_key(PLAYLIST_URL), PLAYLIST_KEY)

    def test_key_shape(self):
        key = compute_content_key("https://example.com/x")
        self.assertEqual(len(key), CONTENT_KEY_LENGTH)
        self.assertEqual(key, key.lower())

    def test_key_is_stable_and_url_sensitive(self):
        self.assertEqual(compute_content_key(IMAGE_URL), compute_content_key(IMAGE_URL))
        self.assertNotEqual(compute_content_key(IMAGE_URL), compute_content_key(IMAGE_URL + "?x=1"))


class TestExtensions(unittest.TestCase):
    def test_extension_from_url_path(self):
        self.assertEqual(get_extension_from_url("https://example.com/a/b/photo.JPG"), ".JPG")
        self.assertEqual(get_extension_from_url("https://example.com/a/clip.mp4?sig=1.2"), ".mp4")

    def test_no_extension(self):
        self.assertEqual(get_extension_from_url(IMAGE_URL), "")
        self.assertEqual(get_extension_from_url("https://example.com/"), "")
        self.assertEqual(get_extension_from_url("https://example.com/file.not-ext"), "")

    def test_playlist_detection(self):
        self.assertTrue(is_playlist_url(PLAYLIST_URL))
        self.assertTrue(is_playlist_url("https://example.com/stream?format=m3u8"))
        self.assertFalse(is_playlist_url(IMAGE_URL))

    def test_resolve_extension_order(self):
        self.assertEqual(resolve_extension("https://example.com/a.webp", MediaKind.IMAGE), ".webp")
        self.assertEqual(resolve_extension("https://example.com/stream?f=m3u8", MediaKind.VIDEO), ".m3u8")
        self.assertEqual(resolve_extension(IMAGE_URL, MediaKind.IMAGE), ".png")
        self.assertEqual(resolve_extension("https://example.com/v", MediaKind.VIDEO), ".mp4")


class TestFilenames(unittest.TestCase):
    def test_image_filename(self):
        self.assertEqual(filename_for_reference(IMAGE_URL, MediaKind.IMAGE), IMAGE_KEY + ".png")

    def test_streamed_video_filename_is_mp4(self):
        self.assertEqual(
            filename_for_reference(PLAYLIST_URL, MediaKind.VIDEO, streamed=True),
            PLAYLIST_KEY + ".mp4",
        )

    def test_direct_playlist_filename_keeps_m3u8(self):
        self.assertEqual(
            filename_for_reference(PLAYLIST_URL, MediaKind.VIDEO),
            PLAYLIST_KEY + ".m3u8",
        )

    def test_generate_adds_dot(self):
        self.assertEqual(generate_media_filename(IMAGE_KEY, "jpg"), IMAGE_KEY + ".jpg")

    def test_generate_rejects_bad_key(self):
        with self.assertRaises(ValueError):
            generate_media_filename("abc123", ".jpg")

    def test_parse_round_trip(self):
        parsed = parse_media_filename(IMAGE_KEY + ".png")
        self.assertIsNotNone(parsed)
        self.assertEqual(parsed.content_key, IMAGE_KEY)
        self.assertEqual(parsed.extension, ".png")

    def test_parse_rejects_foreign_names(self):
        self.assertIsNone(parse_media_filename("holiday.jpg"))
        self.assertIsNone(parse_media_filename("1234567890_2026-01-13_a1b2c3.jpg"))


if __name__ == "__main__":
    unittest.main()
