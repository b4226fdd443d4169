import unittest

from cos_browser.errors import TransportError, ValidationError
from cos_browser.listing import ResourceIterator
from cos_browser.models import ListingCounts
from cos_browser.resources import DirectoryResource, FileResource


def file_entry(name, size=10):
    return {"name": name, "filesize": size, "filelen": size, "ctime": "1700000000", "mtime": "1700000000"}


def dir_entry(name):
    return {"name": name, "ctime": "1700000000", "mtime": "1700000000"}


def page(infos, *, has_more=False, context=None, dir_count=0, file_count=0):
    return {
        "infos": infos,
        "has_more": has_more,
        "context": context,
        "dir_count": dir_count,
        "file_count": file_count,
    }


class FakeListingService:
    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    def list(self, path, options):
        self.calls.append((path, dict(options)))
        response = self.pages.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeBucket:
    bucket_name = "bucket-one"

    def __init__(self, pages):
        self.service = FakeListingService(pages)


class ResourceIteratorTests(unittest.TestCase):
    def test_yields_every_entry_across_pages_in_order(self):
        bucket = FakeBucket(
            [
                page([file_entry("a.txt"), file_entry("b.txt")], has_more=True, context="ctx-1"),
                page([file_entry("c.txt")]),
            ]
        )

        names = [resource.name for resource in ResourceIterator(bucket, "/docs/")]

        self.assertEqual(["a.txt", "b.txt", "c.txt"], names)
        self.assertEqual(2, len(bucket.service.calls))
        first_path, first_options = bucket.service.calls[0]
        self.assertEqual("/docs/", first_path)
        self.assertEqual("bucket-one", first_options["bucket"])
        self.assertNotIn("context", first_options)
        self.assertEqual("ctx-1", bucket.service.calls[1][1]["context"])

    def test_empty_intermediate_pages_are_not_the_end(self):
        bucket = FakeBucket(
            [
                page([], has_more=True, context="ctx-1"),
                page([], has_more=True, context="ctx-2"),
                page([file_entry("a.txt")]),
            ]
        )

        resources = list(ResourceIterator(bucket, "/"))

        self.assertEqual(["a.txt"], [resource.name for resource in resources])
        self.assertEqual(3, len(bucket.service.calls))
        self.assertEqual("ctx-2", bucket.service.calls[2][1]["context"])

    def test_missing_infos_is_an_empty_page(self):
        bucket = FakeBucket(
            [
                {"has_more": True, "context": "ctx-1"},
                page([file_entry("a.txt")]),
            ]
        )

        resources = list(ResourceIterator(bucket, "/"))

        self.assertEqual(["a.txt"], [resource.name for resource in resources])

    def test_exhausted_iterator_stays_exhausted(self):
        bucket = FakeBucket([page([file_entry("a.txt")])])
        iterator = ResourceIterator(bucket, "/")

        self.assertEqual("a.txt", iterator.produce_next().name)
        self.assertIsNone(iterator.produce_next())
        self.assertIsNone(iterator.produce_next())
        with self.assertRaises(StopIteration):
            next(iterator)
        self.assertEqual(1, len(bucket.service.calls))

    def test_does_not_fetch_until_asked(self):
        bucket = FakeBucket([page([file_entry("a.txt"), file_entry("b.txt")])])
        iterator = ResourceIterator(bucket, "/")

        self.assertEqual([], bucket.service.calls)
        next(iterator)
        next(iterator)
        self.assertEqual(1, len(bucket.service.calls))

    def test_classifies_entries_and_builds_paths(self):
        bucket = FakeBucket([page([dir_entry("sub"), file_entry("empty.txt", size=0)])])

        directory, empty_file = list(ResourceIterator(bucket, "/docs"))

        self.assertIsInstance(directory, DirectoryResource)
        self.assertEqual("/docs/sub/", directory.path)
        self.assertIsInstance(empty_file, FileResource)
        self.assertEqual("/docs/empty.txt", empty_file.path)
        self.assertIs(bucket, empty_file.bucket)

    def test_counts_reflect_the_latest_page_only(self):
        bucket = FakeBucket(
            [
                page([dir_entry("sub"), file_entry("a.txt")], has_more=True, context="ctx-1", dir_count=1, file_count=1),
                page([file_entry("b.txt")], file_count=1),
            ]
        )
        iterator = ResourceIterator(bucket, "/")

        self.assertEqual(ListingCounts(), iterator.counts)
        next(iterator)
        self.assertEqual(ListingCounts(dir_count=1, file_count=1), iterator.counts)
        next(iterator)
        next(iterator)
        self.assertEqual(ListingCounts(dir_count=0, file_count=1), iterator.counts)
        self.assertEqual(1, iterator.counts.total)

    def test_fetch_failure_keeps_cursor_for_retry(self):
        error = TransportError("connection reset")
        bucket = FakeBucket(
            [
                page([file_entry("a.txt")], has_more=True, context="ctx-1", file_count=1),
                error,
                page([file_entry("b.txt")]),
            ]
        )
        iterator = ResourceIterator(bucket, "/")
        self.assertEqual("a.txt", next(iterator).name)

        with self.assertRaises(TransportError):
            next(iterator)

        self.assertEqual("ctx-1", iterator.context)
        self.assertTrue(iterator.has_more)
        self.assertEqual(ListingCounts(file_count=1), iterator.counts)
        self.assertEqual("b.txt", next(iterator).name)
        self.assertEqual("ctx-1", bucket.service.calls[1][1]["context"])
        self.assertEqual("ctx-1", bucket.service.calls[2][1]["context"])

    def test_malformed_entry_fails_without_consuming_the_page(self):
        bucket = FakeBucket(
            [
                page([file_entry("a.txt"), {"name": "broken"}], has_more=True, context="ctx-1", file_count=2),
                page([file_entry("a.txt")]),
            ]
        )
        iterator = ResourceIterator(bucket, "/")

        with self.assertRaises(ValidationError):
            iterator.produce_next()

        self.assertIsNone(iterator.context)
        self.assertTrue(iterator.has_more)
        self.assertEqual(ListingCounts(), iterator.counts)
        self.assertEqual("a.txt", iterator.produce_next().name)

    def test_non_numeric_counts_fail_without_consuming_the_page(self):
        bucket = FakeBucket(
            [
                {"infos": [file_entry("a.txt")], "dir_count": "n/a", "has_more": True, "context": "ctx-1"},
                page([file_entry("a.txt")]),
            ]
        )
        iterator = ResourceIterator(bucket, "/")

        with self.assertRaises(ValidationError):
            iterator.produce_next()

        self.assertIsNone(iterator.context)
        self.assertTrue(iterator.has_more)
        self.assertEqual(ListingCounts(), iterator.counts)
        self.assertEqual(["a.txt"], [resource.name for resource in iterator])
        self.assertNotIn("context", bucket.service.calls[1][1])

    def test_initial_context_is_sent_with_first_fetch(self):
        bucket = FakeBucket([page([file_entry("a.txt")])])
        iterator = ResourceIterator(bucket, "/", {"context": "resume-here", "num": 5})

        next(iterator)

        options = bucket.service.calls[0][1]
        self.assertEqual("resume-here", options["context"])
        self.assertEqual(5, options["num"])

    def test_has_more_false_option_never_fetches(self):
        bucket = FakeBucket([])
        iterator = ResourceIterator(bucket, "/", {"has_more": False})

        self.assertEqual([], list(iterator))
        self.assertEqual([], bucket.service.calls)


if __name__ == "__main__":
    unittest.main()
