import asyncio
import threading
import unittest

from pdf_fixtures import make_pdf
from tocedit.modules.document.errors import PasswordRequiredError, WorkerClosedError
from tocedit.modules.document.worker import DocumentWorker, WorkerClient
from tocedit.schemas.common import OutlineNode


class ThreadRecordingEngine:
    def __init__(self) -> None:
        self.threads = []
        self.release = threading.Event()

    def count_pages(self) -> int:
        self.threads.append(threading.current_thread().name)
        return 5

    def format_toc(self, items) -> str:
        self.release.wait(timeout=5)
        return "formatted"

    def close(self) -> None:
        pass


class WorkerClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = WorkerClient()

    def tearDown(self) -> None:
        self.client.close()

    def test_call_resolves_future(self) -> None:
        self.assertEqual(self.client.call("count_pages").result(timeout=5), 0)
        items = self.client.call("parse_toc", "1: A").result(timeout=5)
        self.assertEqual(items, [OutlineNode(title="A", page=0)])

    def test_errors_travel_back_to_caller(self) -> None:
        future = self.client.call("open_file", make_pdf(user_password="secret"), "locked.pdf")
        with self.assertRaises(PasswordRequiredError):
            future.result(timeout=5)
        self.assertTrue(self.client.call("authenticate_password", "secret").result(timeout=5))
        self.assertEqual(self.client.call("count_pages").result(timeout=5), 3)

    def test_unknown_operation_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.client.call("close").result(timeout=5)

    def test_calls_after_close_fail(self) -> None:
        self.client.close()
        with self.assertRaises(WorkerClosedError):
            self.client.call("count_pages").result(timeout=5)


class WorkerOwnershipTests(unittest.TestCase):
    def test_engine_runs_only_on_worker_thread(self) -> None:
        engine = ThreadRecordingEngine()
        client = WorkerClient(DocumentWorker(engine))
        try:
            client.call("count_pages").result(timeout=5)
            client.call("count_pages").result(timeout=5)
        finally:
            client.close()
        self.assertEqual(engine.threads, ["tocedit-document-worker"] * 2)

    def test_responses_are_matched_by_call_id(self) -> None:
        engine = ThreadRecordingEngine()
        client = WorkerClient(DocumentWorker(engine))
        try:
            slow = client.call("format_toc", [])
            fast = client.call("count_pages")
            self.assertFalse(slow.done())
            engine.release.set()
            self.assertEqual(fast.result(timeout=5), 5)
            self.assertEqual(slow.result(timeout=5), "formatted")
        finally:
            client.close()


class AsyncWorkerClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.client = WorkerClient()

    async def asyncTearDown(self) -> None:
        self.client.close()

    async def test_async_wrappers(self) -> None:
        await self.client.open_file(make_pdf(pages=2), "doc.pdf")
        self.assertEqual(await self.client.count_pages(), 2)
        items = await self.client.parse_toc("1: A\n\t2: B")
        await self.client.set_outline(items)
        self.assertEqual(await self.client.get_outline(), items)
        self.assertEqual(await self.client.format_toc(items), "1: A\n\t2: B\n")
        results = await asyncio.gather(
            self.client.render_page(1, 10),
            self.client.render_page(2, 11),
        )
        self.assertEqual([result.request_id for result in results], [10, 11])


if __name__ == "__main__":
    unittest.main()
