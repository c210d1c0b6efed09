"""Module loader built from a read-file function and a list of source paths."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional, Sequence

import structlog

from ..forms.types import Symbol
from .contracts import LoadFn, LoadRequest, LoadResult, ReadFileFn

logger = structlog.get_logger()

MACROS_EXTENSIONS = (".clj", ".cljc")
SOURCE_EXTENSIONS = (".cljs", ".cljc", ".js")
NS_SOURCE_EXTENSIONS = (".cljs", ".cljc", ".clj", ".js")

# Namespaces bundled with the runtime, never fetched from disk
SKIP_LOAD = frozenset(
    Symbol(name) for name in ("cljs.core", "cljs.analyzer", "cljs.env", "cljs.reader", "cljs.js")
)
SKIP_LOAD_MACROS = frozenset(
    Symbol(name)
    for name in (
        "cljs.core",
        "cljs.analyzer.macros",
        "cljs.env.macros",
        "cljs.pprint",
        "cljs.test",
        "clojure.template",
        "cljs.reader",
    )
)

_GOOG_PATH_RE = re.compile(r"^goog/.*")
_GOOG_DEPENDENCY_RE = re.compile(r"\ngoog\.addDependency\('(.*)', \[(.*?)\].*")
_QUOTED_RE = re.compile(r"'(.*?)'")


def normalize_path(path: str) -> str:
    """Ensure a non-empty directory path ends with a slash."""
    if path and not path.endswith("/"):
        return path + "/"
    return path


def ns_to_path(ns: Symbol) -> str:
    """Relative path (without extension) of the file defining ``ns``."""
    return str(ns).replace(".", "/").replace("-", "_")


def skip_load(request: LoadRequest) -> bool:
    if request.macros:
        return request.name in SKIP_LOAD_MACROS
    return request.name in SKIP_LOAD


def _candidates(src_paths: Iterable[str], path: str, extensions: Sequence[str]) -> list[str]:
    return [f"{normalize_path(src)}{path}{ext}" for src in src_paths for ext in extensions]


def file_paths_to_try(src_paths: Iterable[str], macros: bool, path: str) -> list[str]:
    return _candidates(src_paths, path, MACROS_EXTENSIONS if macros else SOURCE_EXTENSIONS)


def goog_file_paths_to_try(src_paths: Iterable[str], goog_path: str) -> list[str]:
    return _candidates(src_paths, goog_path, (".js",))


def file_paths_to_try_from_ns(src_paths: Iterable[str], ns: Symbol) -> list[str]:
    return _candidates(src_paths, ns_to_path(ns), NS_SOURCE_EXTENSIONS)


async def read_files(verbose: bool, paths: Iterable[str], read_file_fn: ReadFileFn) -> Optional[LoadResult]:
    """Read candidate files in order and return the first one that exists.

    ``read_file_fn`` is never called again once a file has been found.
    """
    for path in paths:
        if verbose:
            logger.debug("Trying to read file", path=path)
        source = await read_file_fn(path)
        if source is not None:
            if verbose:
                logger.debug("Found file", path=path)
            lang = "js" if path.endswith(".js") else "clj"
            return LoadResult(lang=lang, source=source, file=path)
    if verbose:
        logger.debug("No candidate file found")
    return None


def goog_deps_map(deps_js_content: str) -> dict[Symbol, str]:
    """Map each provide in a ``goog/deps.js`` file to its path without extension."""
    index: dict[Symbol, str] = {}
    for match in _GOOG_DEPENDENCY_RE.finditer(deps_js_content):
        path, provides = match.group(1), match.group(2)
        if path.endswith(".js"):
            path = path[: -len(".js")]
        for provide in _QUOTED_RE.findall(provides):
            index[Symbol(provide)] = f"goog/{path}"
    return index


def make_load_fn(
    verbose: bool,
    src_paths: Sequence[str],
    read_file_fn: ReadFileFn,
    goog_path: Callable[[Symbol], Optional[str]],
) -> LoadFn:
    """Build a loader that searches ``src_paths`` through ``read_file_fn``.

    ``goog_path`` resolves Closure provides to paths using the module index
    discovered at initialization; it is consulted at load time, so the index
    may be filled after the loader is built.
    """
    src_paths = list(src_paths)

    async def load(request: LoadRequest) -> Optional[LoadResult]:
        if skip_load(request):
            if verbose:
                logger.debug("Skipping load", name=str(request.name), macros=request.macros)
            return LoadResult(lang="js", source="")

        if _GOOG_PATH_RE.match(request.path):
            path = goog_path(request.name)
            if path is None:
                return None
            return await read_files(verbose, goog_file_paths_to_try(src_paths, path), read_file_fn)

        return await read_files(
            verbose, file_paths_to_try(src_paths, request.macros, request.path), read_file_fn
        )

    return load
