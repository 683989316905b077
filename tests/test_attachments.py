import base64, tempfile, unittest
from pathlib import Path
from easy_gmail import (
    AttachmentDownloadError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    TransportError,
    download_all_attachments,
    SendRequest,
    compose_message,
    download_attachment,
    parse_message,
)

def b64url(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode().rstrip("=")

def message_with(*attachments):
    """attachments: (filename, attachment_id) pairs."""
    return parse_message({
        "id": "msg1",
        "payload": {
            "headers": [{"name": "Subject", "value": "Files"}],
            "parts": [
                {"filename": name, "mimeType": "application/octet-stream", "body": {"attachmentId": aid, "size": 3}}
                for name, aid in attachments
            ],
        },
    })

class FakeTransport:
    def __init__(self, contents, failing=()):
        self.contents = contents
        self.failing = set(failing)
        self.calls = []

    async def fetch_attachment_bytes(self, message_id, attachment_id, user_id):
        self.calls.append((message_id, attachment_id, user_id))
        if attachment_id in self.failing:
            raise TransportError("Gmail API error: 500")
        return b64url(self.contents[attachment_id])

class TestDownloadAttachment(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.folder = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    async def test_duplicate_index_selects_later_part(self):
        message = message_with(("report.pdf", "A1"), ("report.pdf", "A2"))
        transport = FakeTransport({"A1": b"first", "A2": b"second"})
        path = await download_attachment(transport, message, "report.pdf", self.folder, duplicate_index=1)
        self.assertEqual(path, self.folder / "report.pdf")
        self.assertEqual(path.read_bytes(), b"second")
        self.assertEqual(transport.calls, [("msg1", "A2", "me")])

    async def test_binary_content_is_written_unchanged(self):
        message = message_with(("logo.png", "IMG"))
        transport = FakeTransport({"IMG": b"\x89PNG\r\n\x1a\n\x00\xff"})
        path = await download_attachment(transport, message, "logo.png", self.folder)
        self.assertEqual(path.read_bytes(), b"\x89PNG\r\n\x1a\n\x00\xff")

    async def test_unknown_name_or_index(self):
        message = message_with(("report.pdf", "A1"))
        transport = FakeTransport({"A1": b"x"})
        with self.assertRaises(NotFoundError):
            await download_attachment(transport, message, "other.pdf", self.folder)
        with self.assertRaises(NotFoundError):
            await download_attachment(transport, message, "report.pdf", self.folder, duplicate_index=1)
        self.assertEqual(transport.calls, [])

    async def test_creates_missing_folder(self):
        message = message_with(("a.txt", "A"))
        target = self.folder / "nested" / "dir"
        await download_attachment(FakeTransport({"A": b"abc"}), message, "a.txt", target)
        self.assertEqual((target / "a.txt").read_bytes(), b"abc")

    async def test_folder_that_is_a_file(self):
        blocker = self.folder / "not-a-dir"
        blocker.write_text("x")
        message = message_with(("a.txt", "A"))
        with self.assertRaises(InvalidArgumentError):
            await download_attachment(FakeTransport({"A": b"abc"}), message, "a.txt", blocker)

    async def test_inline_data_from_raw_message_is_written_without_fetching(self):
        source = self.folder / "src" / "report.txt"
        source.parent.mkdir()
        source.write_bytes(b"quarterly numbers")
        composed = await compose_message(SendRequest(recipient="a@b.com", attachments=[str(source)]))
        message = parse_message({"id": "m1", "raw": composed["raw"]}, prefer_raw=True)
        transport = FakeTransport({})
        dest = self.folder / "dest"
        path = await download_attachment(transport, message, str(source), dest)
        self.assertEqual(path, dest / "report.txt")
        self.assertEqual(path.read_bytes(), b"quarterly numbers")
        self.assertEqual(transport.calls, [])

    async def test_part_without_id_or_data(self):
        message = message_with(("a.txt", None))
        transport = FakeTransport({})
        with self.assertRaises(NotFoundError) as ctx:
            await download_attachment(transport, message, "a.txt", self.folder)
        self.assertEqual(ctx.exception.details["file_name"], "a.txt")
        self.assertEqual(transport.calls, [])

class TestAttachmentFileNames(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.dest = self.root / "dest"

    def tearDown(self):
        self._tmp.cleanup()

    async def test_path_names_stay_inside_folder(self):
        message = message_with((str(self.root / "outside.txt"), "A"), ("../escaped.txt", "B"))
        transport = FakeTransport({"A": b"aa", "B": b"bb"})
        written = await download_all_attachments(transport, message, self.dest)
        self.assertEqual(written, ["outside.txt", "escaped.txt"])
        self.assertEqual((self.dest / "outside.txt").read_bytes(), b"aa")
        self.assertEqual((self.dest / "escaped.txt").read_bytes(), b"bb")
        self.assertFalse((self.root / "outside.txt").exists())
        self.assertFalse((self.root / "escaped.txt").exists())

    async def test_single_download_uses_base_name(self):
        message = message_with(("..\\..\\win.ini", "A"))
        path = await download_attachment(FakeTransport({"A": b"x"}), message, "..\\..\\win.ini", self.dest)
        self.assertEqual(path, self.dest / "win.ini")

    async def test_unusable_names_are_rejected(self):
        message = message_with(("..", "A"))
        transport = FakeTransport({"A": b"x"})
        with self.assertRaises(InvalidArgumentError):
            await download_attachment(transport, message, "..", self.dest)
        with self.assertRaises(AttachmentDownloadError) as ctx:
            await download_all_attachments(transport, message, self.dest)
        self.assertIsInstance(ctx.exception.failures[0][1], InvalidArgumentError)
        self.assertEqual(transport.calls, [])

class TestDownloadAllAttachments(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.folder = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    async def test_downloads_every_attachment(self):
        message = message_with(("a.txt", "A"), ("b.txt", "B"), ("c.txt", "C"))
        transport = FakeTransport({"A": b"aa", "B": b"bb", "C": b"cc"})
        written = await download_all_attachments(transport, message, self.folder)
        self.assertEqual(written, ["a.txt", "b.txt", "c.txt"])
        self.assertEqual([c[1] for c in transport.calls], ["A", "B", "C"])
        self.assertEqual((self.folder / "c.txt").read_bytes(), b"cc")

    async def test_duplicate_names_conflict_without_overwrite(self):
        message = message_with(("a.txt", "A1"), ("a.txt", "A2"))
        transport = FakeTransport({"A1": b"1", "A2": b"2"})
        with self.assertRaises(ConflictError) as ctx:
            await download_all_attachments(transport, message, self.folder, overwrite=False)
        self.assertEqual(ctx.exception.details["file_names"], ["a.txt"])
        self.assertEqual(transport.calls, [])

    async def test_duplicate_names_overwrite_by_default(self):
        message = message_with(("a.txt", "A1"), ("a.txt", "A2"))
        written = await download_all_attachments(FakeTransport({"A1": b"1", "A2": b"2"}), message, self.folder)
        self.assertEqual(written, ["a.txt", "a.txt"])
        self.assertEqual((self.folder / "a.txt").read_bytes(), b"2")

    async def test_failures_are_reported_after_the_rest_succeed(self):
        message = message_with(("a.txt", "A"), ("b.txt", "B"), ("c.txt", "C"))
        transport = FakeTransport({"A": b"aa", "C": b"cc"}, failing={"B"})
        with self.assertRaises(AttachmentDownloadError) as ctx:
            await download_all_attachments(transport, message, self.folder)
        self.assertEqual(ctx.exception.downloaded, ["a.txt", "c.txt"])
        self.assertEqual([name for name, _ in ctx.exception.failures], ["b.txt"])
        self.assertIsInstance(ctx.exception.failures[0][1], TransportError)
        self.assertTrue((self.folder / "c.txt").exists())
        self.assertFalse((self.folder / "b.txt").exists())

    async def test_no_attachments(self):
        message = message_with()
        self.assertEqual(await download_all_attachments(FakeTransport({}), message, self.folder), [])

if __name__ == "__main__":
    unittest.main()
