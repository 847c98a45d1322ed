import sys
import threading
import time


class UploadProgress:
    """Thread-safe, single-line progress for upload bytes.

    Writes an updating line to stderr so stdout stays clean. boto3 transfer
    callbacks call ``add_bytes`` from its worker threads.
    """

    def __init__(self, total_bytes: int, total_files: int, enabled: bool = True) -> None:
        self.total_bytes = max(0, int(total_bytes))
        self.total_files = max(0, int(total_files))
        self.enabled = enabled
        self._uploaded_bytes = 0
        self._done_files = 0
        self._start = time.perf_counter()
        self._last_render = 0.0
        self._lock = threading.Lock()
        self._render(force=True)

    @property
    def uploaded_bytes(self) -> int:
        return self._uploaded_bytes

    @property
    def done_files(self) -> int:
        return self._done_files

    def add_bytes(self, n: int) -> None:
        if n <= 0:
            return
        with self._lock:
            self._uploaded_bytes += n
            self._render()

    def file_done(self) -> None:
        with self._lock:
            self._done_files += 1
            self._render(force=True)

    @staticmethod
    def format_bytes(b: float) -> str:
        for unit in ["B", "KB", "MB", "GB"]:
            if b < 1024:
                return f"{b:.0f}{unit}" if unit == "B" else f"{b:.1f}{unit}"
            b /= 1024
        return f"{b:.1f}TB"

    def _render(self, force: bool = False) -> None:
        if not self.enabled:
            return
        now = time.perf_counter()
        if not force and (now - self._last_render) < 0.1:
            return
        self._last_render = now
        uploaded = min(self._uploaded_bytes, self.total_bytes) if self.total_bytes else self._uploaded_bytes
        pct = (uploaded / self.total_bytes) if self.total_bytes else 0.0
        bar_width = 30
        filled = int(pct * bar_width)
        bar = "#" * filled + "-" * (bar_width - filled)
        msg = (
            f"\r[{bar}] {pct*100:6.2f}%  "
            f"{self.format_bytes(uploaded)}/{self.format_bytes(self.total_bytes)}  "
            f"files {self._done_files}/{self.total_files}"
        )
        sys.stderr.write(msg)
        sys.stderr.flush()

    def finish(self) -> None:
        with self._lock:
            if self.enabled:
                self._render(force=True)
                sys.stderr.write("\n")
                sys.stderr.flush()
