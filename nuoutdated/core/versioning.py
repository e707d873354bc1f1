"""NuGet flavoured semantic versions and version ranges.

Versions follow SemVer 2.0 precedence with NuGet's extensions: an optional
fourth ``revision`` component and case-insensitive prerelease labels.
Ranges use NuGet's interval notation (``[1.0, 2.0)``), a bare minimum
(``1.0``) or a floating version (``1.*``, ``1.0.0-*``).
"""
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional, Tuple

_VERSION_RE = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


def _label_key(release: str) -> Tuple:
    # A release without label sorts above every prerelease of the same base.
    if not release:
        return (1,)
    parts = []
    for part in release.split("."):
        if part.isdigit():
            parts.append((0, int(part), ""))
        else:
            parts.append((1, 0, part.lower()))
    return (0, tuple(parts))


@total_ordering
@dataclass(frozen=True, eq=False)
class NuGetVersion:
    major: int
    minor: int = 0
    patch: int = 0
    revision: int = 0
    release: str = ""
    metadata: str = ""

    @classmethod
    def parse(cls, text: str) -> "NuGetVersion":
        match = _VERSION_RE.match(text.strip()) if text else None
        if not match:
            raise ValueError(f"Invalid version: {text!r}")
        major, minor, patch, revision, release, metadata = match.groups()
        return cls(
            major=int(major),
            minor=int(minor or 0),
            patch=int(patch or 0),
            revision=int(revision or 0),
            release=release or "",
            metadata=metadata or "",
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.release)

    def sort_key(self) -> Tuple:
        return (self.major, self.minor, self.patch, self.revision, _label_key(self.release))

    def __eq__(self, other):
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other):
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release:
            text += f"-{self.release}"
        return text

    def __repr__(self) -> str:
        return f"NuGetVersion('{self}')"


def try_parse_version(text: Optional[str]) -> Optional[NuGetVersion]:
    if not text:
        return None
    try:
        return NuGetVersion.parse(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class VersionRange:
    """An interval of acceptable versions.

    ``min_version``/``max_version`` of ``None`` mean the side is unbounded.
    Floating ranges keep their lower bound only; the float itself is what
    the resolver answers, so for matching purposes ``1.*`` behaves as
    ``[1.0.0, )``.
    """

    min_version: Optional[NuGetVersion] = None
    max_version: Optional[NuGetVersion] = None
    include_min: bool = True
    include_max: bool = False
    is_floating: bool = False
    original: str = ""

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        raw = (text or "").strip()
        if not raw:
            raise ValueError("Empty version range")

        if raw[0] in "[(":
            return cls._parse_interval(raw)

        if "*" in raw:
            return cls._parse_float(raw, raw)

        return cls(min_version=NuGetVersion.parse(raw), include_min=True, original=raw)

    @classmethod
    def _parse_interval(cls, raw: str) -> "VersionRange":
        if len(raw) < 3 or raw[-1] not in "])":
            raise ValueError(f"Invalid version range: {raw!r}")

        include_min = raw[0] == "["
        include_max = raw[-1] == "]"
        body = raw[1:-1]

        if "," not in body:
            # [1.0] is the only valid single-version interval.
            if not (include_min and include_max):
                raise ValueError(f"Invalid version range: {raw!r}")
            exact = NuGetVersion.parse(body)
            return cls(exact, exact, True, True, original=raw)

        lower, _, upper = body.partition(",")
        lower, upper = lower.strip(), upper.strip()
        if "," in upper:
            raise ValueError(f"Invalid version range: {raw!r}")

        if "*" in lower:
            floating = cls._parse_float(lower, raw)
            min_version, is_floating = floating.min_version, True
        else:
            min_version, is_floating = (NuGetVersion.parse(lower) if lower else None), False
        max_version = NuGetVersion.parse(upper) if upper else None

        if min_version is None and max_version is None and not raw.startswith("(,"):
            raise ValueError(f"Invalid version range: {raw!r}")
        if min_version is not None and max_version is not None:
            if max_version < min_version:
                raise ValueError(f"Invalid version range: {raw!r}")
            if max_version == min_version and not (include_min and include_max):
                raise ValueError(f"Invalid version range: {raw!r}")

        return cls(
            min_version=min_version,
            max_version=max_version,
            include_min=include_min if min_version is not None else False,
            include_max=include_max if max_version is not None else False,
            is_floating=is_floating,
            original=raw,
        )

    @classmethod
    def _parse_float(cls, text: str, original: str) -> "VersionRange":
        base, float_release = text, False
        if base.endswith("-*"):
            base, float_release = base[:-2], True
        elif "-" in base and base.endswith("*"):
            # 1.0.0-beta* floats the label after a fixed prefix
            base, label = base.split("-", 1)
            label = label[:-1]
            numbers = cls._float_numbers(base)
            return cls(
                min_version=NuGetVersion.parse(f"{numbers}-{label}" if label else f"{numbers}-0"),
                include_min=True,
                is_floating=True,
                original=original,
            )

        numbers = cls._float_numbers(base)
        minimum = NuGetVersion.parse(f"{numbers}-0" if float_release else numbers)
        return cls(min_version=minimum, include_min=True, is_floating=True, original=original)

    @staticmethod
    def _float_numbers(base: str) -> str:
        if base == "*":
            return "0.0.0"
        parts = base.split(".")
        if any(part == "*" for part in parts[:-1]) or len(parts) > 4:
            raise ValueError(f"Invalid floating version: {base!r}")
        numbers = [p if p != "*" else "0" for p in parts]
        if not all(p.isdigit() for p in numbers):
            raise ValueError(f"Invalid floating version: {base!r}")
        return ".".join(numbers)

    def satisfies(self, version: NuGetVersion) -> bool:
        if self.min_version is not None:
            if self.include_min:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.include_max:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    def __str__(self) -> str:
        if self.original:
            return self.original
        lower = str(self.min_version) if self.min_version else ""
        upper = str(self.max_version) if self.max_version else ""
        return f"{'[' if self.include_min else '('}{lower}, {upper}{']' if self.include_max else ')'}"


def try_parse_range(text: Optional[str]) -> Optional[VersionRange]:
    if not text:
        return None
    try:
        return VersionRange.parse(text)
    except ValueError:
        return None

