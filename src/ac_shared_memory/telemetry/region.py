"""RegionHandle — read-only attachment to one named shared memory region.

On Windows the simulation publishes named file mappings, opened here with
``OpenFileMappingW`` + ``MapViewOfFile`` through ``ctypes``.  Elsewhere the
region is a POSIX shared memory segment opened with
:mod:`multiprocessing.shared_memory`.  Either way the region is only ever
attached to, never created, and the view stays mapped until :meth:`close`.
"""

from __future__ import annotations

import ctypes
import sys
import threading
from multiprocessing import resource_tracker, shared_memory

from ac_shared_memory.telemetry.exceptions import NotConnectedError, RegionNotPublishedError

_FILE_MAP_READ = 0x0004


class RegionHandle:
    """A named shared memory mapping that can be snapshotted and closed.

    Use :meth:`open` to attach; the constructor alone does not map anything.
    ``snapshot()`` and ``close()`` are serialized so a read racing a close
    never touches a released view.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._open = False

    @classmethod
    def open(cls, name: str) -> RegionHandle:
        """Attach to the existing region *name*.

        Raises
        ------
        RegionNotPublishedError
            If no region with that name exists.
        """
        handle: RegionHandle = _WindowsRegion(name) if sys.platform == "win32" else _PosixRegion(name)
        handle._attach()
        handle._open = True
        return handle

    @property
    def is_open(self) -> bool:
        return self._open

    def snapshot(self, size: int) -> bytes:
        """Copy the first *size* bytes of the mapping as they are right now."""
        with self._lock:
            if not self._open:
                raise NotConnectedError(f"Shared memory region {self.name!r} is closed")
            return self._read(size)

    def close(self) -> None:
        """Release the mapping.  Safe to call more than once."""
        with self._lock:
            if not self._open:
                return
            self._open = False
            self._release()

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"<{type(self).__name__} {self.name!r} {state}>"

    # ------------------------------------------------------------------
    # Platform hooks
    # ------------------------------------------------------------------

    def _attach(self) -> None:
        raise NotImplementedError

    def _read(self, size: int) -> bytes:
        raise NotImplementedError

    def _release(self) -> None:
        raise NotImplementedError


class _WindowsRegion(RegionHandle):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._mapping = None
        self._view: int | None = None

    def _attach(self) -> None:
        import ctypes.wintypes

        k32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        # Set correct types so 64-bit pointers are not truncated on 64-bit Windows.
        k32.OpenFileMappingW.restype = ctypes.wintypes.HANDLE
        k32.OpenFileMappingW.argtypes = [
            ctypes.wintypes.DWORD,
            ctypes.wintypes.BOOL,
            ctypes.wintypes.LPCWSTR,
        ]
        k32.MapViewOfFile.restype = ctypes.c_void_p
        k32.MapViewOfFile.argtypes = [
            ctypes.wintypes.HANDLE,
            ctypes.wintypes.DWORD,
            ctypes.wintypes.DWORD,
            ctypes.wintypes.DWORD,
            ctypes.c_size_t,
        ]
        k32.UnmapViewOfFile.argtypes = [ctypes.c_void_p]
        k32.UnmapViewOfFile.restype = ctypes.wintypes.BOOL
        k32.CloseHandle.argtypes = [ctypes.wintypes.HANDLE]
        k32.CloseHandle.restype = ctypes.wintypes.BOOL
        self._k32 = k32

        mapping = k32.OpenFileMappingW(_FILE_MAP_READ, False, self.name)
        if not mapping:
            raise RegionNotPublishedError(self.name)

        view = k32.MapViewOfFile(mapping, _FILE_MAP_READ, 0, 0, 0)
        if not view:
            k32.CloseHandle(mapping)
            raise ctypes.WinError()  # type: ignore[attr-defined]

        self._mapping = mapping
        self._view = view

    def _read(self, size: int) -> bytes:
        return ctypes.string_at(self._view, size)

    def _release(self) -> None:
        self._k32.UnmapViewOfFile(self._view)
        self._k32.CloseHandle(self._mapping)
        self._view = None
        self._mapping = None


class _PosixRegion(RegionHandle):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._shm: shared_memory.SharedMemory | None = None

    def _attach(self) -> None:
        try:
            if sys.version_info >= (3, 13):
                shm = shared_memory.SharedMemory(name=self.name, create=False, track=False)
            else:
                shm = shared_memory.SharedMemory(name=self.name, create=False)
                # Detach from the resource tracker so it does not unlink the
                # publisher's segment when this process exits.
                resource_tracker.unregister(shm._name, "shared_memory")  # type: ignore[attr-defined]
        except FileNotFoundError:
            raise RegionNotPublishedError(self.name) from None
        self._shm = shm

    def _read(self, size: int) -> bytes:
        # A segment shorter than *size* yields a short copy; the decoder
        # reports that as a layout mismatch.
        return bytes(self._shm.buf[:size])

    def _release(self) -> None:
        self._shm.close()
        self._shm = None
