"""Asynchronous helpers for working with many TSM files at once."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, Union

import pandas as pd

from .tsm_parse import FastTsmReader, IndexTable, TsmConfig

T = TypeVar("T")

PathLike = Union[str, Path]


class AsyncTsmReader:
    """Load indexes and series blocks from several TSM files concurrently.

    Each file is opened, read and closed on a worker thread; the event loop
    never blocks on file I/O.
    """

    def __init__(
        self,
        directory: Optional[PathLike] = None,
        *,
        config: Optional[TsmConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self.reader = FastTsmReader
        self._directory = Path(directory) if directory is not None else None
        self._config = config or TsmConfig()
        self._loop = loop
        self._max_concurrency = max_concurrency
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = logging.getLogger(__name__)

    @property
    def config(self) -> TsmConfig:
        return self._config

    def list_files(self, pattern: str = "*.tsm") -> List[Path]:
        """Sorted TSM files under the configured directory."""
        if self._directory is None:
            raise ValueError("No directory configured for this reader")
        return sorted(self._directory.glob(pattern))

    async def load_indexes(self, file_paths: Sequence[PathLike]) -> Dict[str, IndexTable]:
        """Parse the index of every file. Missing files are logged and left out."""
        results: Dict[str, IndexTable] = {}

        async def _load_and_store(path: Path) -> None:
            table = await self._load_index(path)
            if table is not None:
                results[str(path)] = table

        await asyncio.gather(*(_load_and_store(Path(p)) for p in file_paths))
        return {str(Path(p)): results[str(Path(p))] for p in file_paths if str(Path(p)) in results}

    async def load_index_frames(
        self,
        file_paths: Sequence[PathLike],
        *,
        include_path_column: bool = True,
        time_unit: Optional[str] = None,
        tz: Optional[str] = None,
    ) -> pd.DataFrame:
        """Concatenate the per-entry index frames of every file."""
        tables = await self.load_indexes(file_paths)
        frames = []
        for path, table in tables.items():
            df = table.to_pandas(time_unit=time_unit, tz=tz)
            if include_path_column:
                df["SourceFile"] = path
            frames.append(df)
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    async def read_series(
        self,
        file_paths: Sequence[PathLike],
        key: str,
        *,
        start: Optional[int] = None,
        end: Optional[int] = None,
        skip_errors: bool = False,
    ) -> Dict[str, List[bytes]]:
        """Return the payloads for ``key`` in ``[start, end]`` from each file.

        With ``skip_errors`` a block that fails its checksum is logged and left
        out; otherwise the first bad block aborts the whole call.
        """
        results: Dict[str, List[bytes]] = {}

        async def _read_and_store(path: Path) -> None:
            results[str(path)] = await self._read_file(
                path, key, start=start, end=end, skip_errors=skip_errors
            )

        await asyncio.gather(*(_read_and_store(Path(p)) for p in file_paths))
        return {str(Path(p)): results[str(Path(p))] for p in file_paths}

    async def _load_index(self, path: Path) -> Optional[IndexTable]:
        def _load() -> Optional[IndexTable]:
            if not path.exists():
                self._logger.warning("TSM file not found: %s", path)
                return None
            with self.reader(path, config=self._config) as rdr:
                return rdr.index

        return await self._run_in_executor(_load)

    async def _read_file(
        self,
        path: Path,
        key: str,
        *,
        start: Optional[int],
        end: Optional[int],
        skip_errors: bool,
    ) -> List[bytes]:
        def _load() -> List[bytes]:
            if not path.exists():
                self._logger.warning("TSM file not found: %s", path)
                return []
            with self.reader(path, config=self._config) as rdr:
                return list(rdr.lookup(key, start, end).payloads(skip_errors=skip_errors))

        return await self._run_in_executor(_load)

    def _get_semaphore(self) -> Optional[asyncio.Semaphore]:
        # A semaphore is tied to one event loop; TsmReader runs a new loop per call
        if not self._max_concurrency:
            return None
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    async def _run_in_executor(self, func: Callable[[], T]) -> T:
        semaphore = self._get_semaphore()
        if semaphore is None:
            return await self._submit(func)
        async with semaphore:
            return await self._submit(func)

    async def _submit(self, func: Callable[[], T]) -> T:
        if self._loop is not None:
            return await self._loop.run_in_executor(None, func)
        return await asyncio.to_thread(func)


class TsmReader:
    """Synchronous wrapper around AsyncTsmReader that handles asyncio automatically."""

    def __init__(
        self,
        directory: Optional[PathLike] = None,
        *,
        config: Optional[TsmConfig] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self._async_reader = AsyncTsmReader(
            directory,
            config=config,
            max_concurrency=max_concurrency,
        )

    def list_files(self, pattern: str = "*.tsm") -> List[Path]:
        return self._async_reader.list_files(pattern)

    def load_indexes(self, file_paths: Sequence[PathLike]) -> Dict[str, IndexTable]:
        """Load indexes synchronously (handles asyncio internally)."""
        return asyncio.run(self._async_reader.load_indexes(file_paths))

    def load_index_frames(
        self,
        file_paths: Sequence[PathLike],
        *,
        include_path_column: bool = True,
        time_unit: Optional[str] = None,
        tz: Optional[str] = None,
    ) -> pd.DataFrame:
        return asyncio.run(
            self._async_reader.load_index_frames(
                file_paths,
                include_path_column=include_path_column,
                time_unit=time_unit,
                tz=tz,
            )
        )

    def read_series(
        self,
        file_paths: Sequence[PathLike],
        key: str,
        *,
        start: Optional[int] = None,
        end: Optional[int] = None,
        skip_errors: bool = False,
    ) -> Dict[str, List[bytes]]:
        return asyncio.run(
            self._async_reader.read_series(
                file_paths,
                key,
                start=start,
                end=end,
                skip_errors=skip_errors,
            )
        )
