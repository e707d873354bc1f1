import asyncio
import os
import tempfile
import unittest

import httpx

from nuoutdated.core.errors import SourceUnreachable
from nuoutdated.core.model import PrereleasePolicy, VersionLock
from nuoutdated.core.resolver import VersionCache, is_local_source, resolve_latest, select_latest
from nuoutdated.core.versioning import NuGetVersion, VersionRange

FEED = "https://feed.test/v3/index.json"
BROKEN_FEED = "https://broken.test/v3/index.json"
ODD_FEED = "https://odd.test/v3/index.json"
ODD_PACKAGES_FEED = "https://odd-packages.test/v3/index.json"


def v(text):
    return NuGetVersion.parse(text)


def versions(*texts):
    return [v(t) for t in texts]


class TestSelectLatest(unittest.TestCase):

    def test_auto_prerelease_with_prerelease_current(self):
        latest = select_latest(
            versions("2.0.0-beta2", "2.0.0", "1.9.0"),
            v("2.0.0-beta1"), None, VersionLock.NONE, PrereleasePolicy.AUTO,
        )
        self.assertEqual(latest, v("2.0.0"))

    def test_auto_prerelease_with_stable_current(self):
        latest = select_latest(
            versions("1.0.0", "1.1.0", "2.0.0-rc1"),
            v("1.0.0"), None, VersionLock.NONE, PrereleasePolicy.AUTO,
        )
        self.assertEqual(latest, v("1.1.0"))

    def test_always_and_never_prerelease(self):
        candidates = versions("1.0.0", "2.0.0-rc1")

        always = select_latest(candidates, v("1.0.0"), None, VersionLock.NONE, PrereleasePolicy.ALWAYS)
        never = select_latest(candidates, v("1.0.0-beta"), None, VersionLock.NONE, PrereleasePolicy.NEVER)

        self.assertEqual(always, v("2.0.0-rc1"))
        self.assertEqual(never, v("1.0.0"))

    def test_major_lock(self):
        latest = select_latest(
            versions("3.2.0", "4.0.0"), v("3.1.0"), None, VersionLock.MAJOR, PrereleasePolicy.AUTO,
        )
        self.assertEqual(latest, v("3.2.0"))

    def test_minor_lock(self):
        latest = select_latest(
            versions("3.1.5", "3.2.0", "4.0.0"), v("3.1.0"), None, VersionLock.MINOR, PrereleasePolicy.AUTO,
        )
        self.assertEqual(latest, v("3.1.5"))

    def test_declared_range_is_a_hard_filter(self):
        latest = select_latest(
            versions("1.5.0", "2.0.0", "2.5.0"),
            v("1.0.0"), VersionRange.parse("[1.0, 2.0)"), VersionLock.NONE, PrereleasePolicy.AUTO,
        )
        self.assertEqual(latest, v("1.5.0"))

    def test_results_stay_inside_range_and_lock_window(self):
        candidates = versions(
            "0.9.0", "1.0.0", "1.0.1", "1.1.0", "1.9.9", "2.0.0-beta", "2.0.0", "2.1.0", "3.0.0",
        )
        ranges = [None, VersionRange.parse("[1.0, 2.0]"), VersionRange.parse("(1.0.1, )"), VersionRange.parse("[1.1.0]")]
        currents = versions("1.0.0", "1.0.1", "2.0.0-alpha", "2.0.0")

        for version_range in ranges:
            for current in currents:
                for lock in VersionLock:
                    for prerelease in PrereleasePolicy:
                        with self.subTest(range=str(version_range), current=str(current), lock=lock, pre=prerelease):
                            latest = select_latest(candidates, current, version_range, lock, prerelease)
                            if latest is None:
                                continue
                            if version_range is not None:
                                self.assertTrue(version_range.satisfies(latest))
                            if lock is not VersionLock.NONE:
                                self.assertEqual(latest.major, current.major)
                            if lock is VersionLock.MINOR:
                                self.assertEqual(latest.minor, current.minor)

    def test_nothing_qualifies(self):
        latest = select_latest(versions("4.0.0"), v("3.1.0"), None, VersionLock.MAJOR, PrereleasePolicy.AUTO)
        self.assertIsNone(latest)

    def test_local_source_detection(self):
        self.assertFalse(is_local_source(FEED))
        self.assertTrue(is_local_source("/home/me/feed"))
        self.assertTrue(is_local_source("file:///home/me/feed"))
        self.assertTrue(is_local_source("C:\\feed"))


class TestResolveLatest(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.requests = []
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        self.cache = VersionCache(client=self.client)

    async def asyncTearDown(self):
        await self.client.aclose()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if request.url.host == "broken.test":
            return httpx.Response(500)
        if request.url.host == "odd.test":
            return httpx.Response(200, json=["not", "an", "index"])
        if str(request.url) == ODD_PACKAGES_FEED:
            return httpx.Response(200, json={
                "resources": ["junk", {"@id": "https://odd-packages.test/flat", "@type": "PackageBaseAddress/3.0.0"}],
            })
        if request.url.path == "/flat/newtonsoft.json/index.json":
            return httpx.Response(200, json=[])
        if request.url.path == "/flat/polly/index.json":
            return httpx.Response(200, json={"versions": [7, None, "8.0.0"]})
        if str(request.url) == FEED:
            return httpx.Response(200, json={
                "version": "3.0.0",
                "resources": [
                    {"@id": "https://feed.test/search", "@type": "SearchQueryService"},
                    {"@id": "https://feed.test/flat", "@type": "PackageBaseAddress/3.0.0"},
                ],
            })
        if request.url.path == "/flat/serilog/index.json":
            return httpx.Response(200, json={"versions": ["2.10.0", "2.12.0", "3.0.0-dev-001", "not-a-version"]})
        return httpx.Response(404)

    async def resolve(self, name, current, sources, version_range=None, lock=VersionLock.NONE, prerelease=PrereleasePolicy.AUTO):
        return await resolve_latest(
            name, v(current), sources, version_range, lock, prerelease, "net6.0", "/src/App/App.csproj", self.cache,
        )

    async def test_resolves_from_http_feed(self):
        latest = await self.resolve("Serilog", "2.10.0", [FEED])
        self.assertEqual(latest, v("2.12.0"))

    async def test_package_not_on_feed(self):
        latest = await self.resolve("Unknown.Package", "1.0.0", [FEED])
        self.assertIsNone(latest)

    async def test_broken_source_is_skipped(self):
        latest = await self.resolve("Serilog", "2.10.0", [BROKEN_FEED, FEED])
        self.assertEqual(latest, v("2.12.0"))

    async def test_source_with_malformed_index_is_skipped(self):
        latest = await self.resolve("Serilog", "2.10.0", [ODD_FEED, FEED])
        self.assertEqual(latest, v("2.12.0"))

    async def test_malformed_sources_alone_are_unreachable(self):
        with self.assertRaises(SourceUnreachable):
            await self.resolve("Serilog", "2.10.0", [ODD_FEED])
        with self.assertRaises(SourceUnreachable):
            await self.resolve("Newtonsoft.Json", "13.0.1", [ODD_PACKAGES_FEED])

    async def test_non_string_versions_are_ignored(self):
        latest = await self.resolve("Polly", "7.0.0", [ODD_PACKAGES_FEED])
        self.assertEqual(latest, v("8.0.0"))

    async def test_no_reachable_source(self):
        with self.assertRaises(SourceUnreachable):
            await self.resolve("Serilog", "2.10.0", [BROKEN_FEED])

    async def test_no_sources_configured(self):
        with self.assertRaises(SourceUnreachable):
            await self.resolve("Serilog", "2.10.0", [])

    async def test_version_lists_are_memoized(self):
        results = await asyncio.gather(
            self.resolve("Serilog", "2.10.0", [FEED]),
            self.resolve("serilog", "2.10.0", [FEED], prerelease=PrereleasePolicy.ALWAYS),
        )

        self.assertEqual(results, [v("2.12.0"), v("3.0.0-dev-001")])
        self.assertEqual(self.requests.count("https://feed.test/flat/serilog/index.json"), 1)
        self.assertEqual(self.requests.count(FEED), 1)

    async def test_local_folder_sources(self):
        with tempfile.TemporaryDirectory() as feed:
            for version in ("1.0.0", "1.4.0"):
                os.makedirs(os.path.join(feed, "serilog", version))
            open(os.path.join(feed, "Serilog.1.6.0.nupkg"), "w").close()
            open(os.path.join(feed, "Serilog.Sinks.Console.9.0.0.nupkg"), "w").close()

            latest = await self.resolve("Serilog", "1.0.0", [feed])

        self.assertEqual(latest, v("1.6.0"))

    async def test_missing_local_folder_is_unreachable(self):
        with self.assertRaises(SourceUnreachable):
            await self.resolve("Serilog", "1.0.0", ["/does/not/exist/feed"])
