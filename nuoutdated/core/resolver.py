"""Upstream version lookup against NuGet v3 feeds and local folder feeds."""
import asyncio
import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import unquote, urlparse

import httpx

from nuoutdated.core.errors import SourceUnreachable
from nuoutdated.core.model import PrereleasePolicy, VersionLock
from nuoutdated.core.versioning import NuGetVersion, VersionRange, try_parse_version

PACKAGE_BASE_ADDRESS = "PackageBaseAddress/3.0.0"
REQUEST_TIMEOUT = 45.0


class VersionCache:
    """Per-run memo of published version lists.

    Create one at the start of a run and use it as an async context manager;
    it owns the HTTP client and is discarded when the run ends. Entries are
    stored as tasks, so concurrent lookups for the same package share one
    request.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = REQUEST_TIMEOUT) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._versions: Dict[Tuple[str, Tuple[str, ...]], asyncio.Task] = {}
        self._base_addresses: Dict[str, asyncio.Task] = {}

    async def __aenter__(self) -> "VersionCache":
        if self._client is None:
            limits = httpx.Limits(max_keepalive_connections=20, max_connections=100)
            self._client = httpx.AsyncClient(timeout=self._timeout, limits=limits, follow_redirects=True)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("VersionCache must be entered before use")
        return self._client

    def get_versions(self, package_name: str, sources: Sequence[str]) -> "asyncio.Task[List[NuGetVersion]]":
        key = (package_name.lower(), tuple(sources))
        task = self._versions.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch_versions(self, package_name, sources))
            self._versions[key] = task
        return task

    def get_base_address(self, source: str) -> "asyncio.Task[str]":
        task = self._base_addresses.get(source)
        if task is None:
            task = asyncio.ensure_future(_fetch_base_address(self.client, source))
            self._base_addresses[source] = task
        return task


def is_local_source(source: str) -> bool:
    return urlparse(source).scheme.lower() not in ("http", "https")


def _local_path(source: str) -> str:
    parsed = urlparse(source)
    if parsed.scheme.lower() == "file":
        return unquote(parsed.path)
    return source


async def _fetch_base_address(client: httpx.AsyncClient, source: str) -> str:
    response = await client.get(source)
    response.raise_for_status()

    data = response.json()
    resources = data.get("resources") if isinstance(data, dict) else None
    if not isinstance(resources, list):
        raise ValueError(f"{source} is not a NuGet v3 service index")

    for resource in resources:
        if not isinstance(resource, dict) or not isinstance(resource.get("@id"), str):
            continue
        resource_type = resource.get("@type")
        types = resource_type if isinstance(resource_type, list) else [resource_type]
        if PACKAGE_BASE_ADDRESS in types:
            return resource["@id"].rstrip("/") + "/"

    raise ValueError(f"{source} does not expose {PACKAGE_BASE_ADDRESS}")


async def _fetch_remote_versions(cache: VersionCache, source: str, package_name: str) -> List[str]:
    base_address = await cache.get_base_address(source)
    url = f"{base_address}{package_name.lower()}/index.json"
    response = await cache.client.get(url)

    # Package not published on this feed
    if response.status_code == 404:
        return []
    response.raise_for_status()

    data = response.json()
    versions = data.get("versions") if isinstance(data, dict) else None
    if not isinstance(versions, list):
        raise ValueError(f"{url} is not a package version index")
    return [text for text in versions if isinstance(text, str)]


def _read_local_versions(root: str, package_name: str) -> List[str]:
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Package source folder does not exist: {root}")

    lowered = package_name.lower()
    versions = []

    # Hierarchical layout: <root>/<id>/<version>/
    for entry in os.listdir(root):
        if entry.lower() == lowered and os.path.isdir(os.path.join(root, entry)):
            versions.extend(os.listdir(os.path.join(root, entry)))

    # Flat layout: <root>/<id>.<version>.nupkg
    prefix = lowered + "."
    for entry in os.listdir(root):
        lower_entry = entry.lower()
        if lower_entry.startswith(prefix) and lower_entry.endswith(".nupkg"):
            versions.append(entry[len(prefix):-len(".nupkg")])

    return versions


async def fetch_source_versions(cache: VersionCache, source: str, package_name: str) -> List[str]:
    if is_local_source(source):
        return await asyncio.to_thread(_read_local_versions, _local_path(source), package_name)
    return await _fetch_remote_versions(cache, source, package_name)


async def fetch_versions(cache: VersionCache, package_name: str, sources: Sequence[str]) -> List[NuGetVersion]:
    """Merges the versions every reachable source publishes for a package.

    A failing source is logged and skipped. Raises SourceUnreachable when no
    source answered at all.
    """
    results = await asyncio.gather(
        *(fetch_source_versions(cache, source, package_name) for source in sources),
        return_exceptions=True,
    )

    merged = set()
    reached = False
    for source, result in zip(sources, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logging.warning(f"Skipping source {source} for {package_name}: {result}")
            continue

        reached = True
        for text in result:
            version = try_parse_version(text)
            if version is None:
                logging.debug(f"Ignoring unparseable version {text!r} of {package_name} from {source}")
                continue
            merged.add(version)

    if not reached:
        raise SourceUnreachable(package_name, sources)
    return sorted(merged)


def _in_lock_window(candidate: NuGetVersion, current: NuGetVersion, version_lock: VersionLock) -> bool:
    if version_lock is VersionLock.MAJOR:
        return candidate.major == current.major
    if version_lock is VersionLock.MINOR:
        return candidate.major == current.major and candidate.minor == current.minor
    return True


def _allows_prerelease(current: NuGetVersion, prerelease: PrereleasePolicy) -> bool:
    if prerelease is PrereleasePolicy.ALWAYS:
        return True
    if prerelease is PrereleasePolicy.NEVER:
        return False
    return current.is_prerelease


def select_latest(
    candidates: Iterable[NuGetVersion],
    current_version: NuGetVersion,
    version_range: Optional[VersionRange],
    version_lock: VersionLock,
    prerelease: PrereleasePolicy,
) -> Optional[NuGetVersion]:
    include_prerelease = _allows_prerelease(current_version, prerelease)

    eligible = [
        candidate for candidate in candidates
        if (include_prerelease or not candidate.is_prerelease)
        and _in_lock_window(candidate, current_version, version_lock)
        and (version_range is None or version_range.satisfies(candidate))
    ]
    return max(eligible, default=None)


async def resolve_latest(
    package_name: str,
    current_version: NuGetVersion,
    sources: Sequence[str],
    version_range: Optional[VersionRange],
    version_lock: VersionLock,
    prerelease: PrereleasePolicy,
    target_framework: str,
    project_path: str,
    cache: VersionCache,
) -> Optional[NuGetVersion]:
    """Returns the highest upstream version allowed by the range and policies.

    None means nothing qualifies. Raises SourceUnreachable if no configured
    source could be queried.
    """
    logging.debug(f"Resolving {package_name} {current_version} for {target_framework} ({project_path})")
    if not sources:
        raise SourceUnreachable(package_name, sources)

    candidates = await cache.get_versions(package_name, sources)
    latest = select_latest(candidates, current_version, version_range, version_lock, prerelease)
    logging.debug(f"{package_name}: {len(candidates)} published, latest eligible {latest}")
    return latest
