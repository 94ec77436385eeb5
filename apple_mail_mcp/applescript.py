"""
AppleScript runner - executes scripts through osascript and captures stdout.

stdout is read in chunks while the script runs, so a script that never stops
printing is killed as soon as it passes the output cap instead of filling
memory until the timeout.
"""

import subprocess
import threading
import time
from typing import IO, List, Optional, Tuple

from .config import settings
from .errors import ExecutionFailure
from .logging import get_logger, log_script_execution

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


def _feed(stream: IO[bytes], data: bytes) -> None:
    try:
        stream.write(data)
        stream.close()
    except BrokenPipeError:
        # The interpreter exited before reading all of its input; its exit
        # status and stderr report why.
        pass


def _drain(stream: IO[bytes], chunks: List[bytes], limit: int) -> None:
    """Collect up to limit bytes of stream, then keep reading and discard."""
    kept = 0
    for chunk in iter(lambda: stream.read1(CHUNK_SIZE), b""):
        if kept < limit:
            chunks.append(chunk[:limit - kept])
            kept += len(chunks[-1])


class AppleScriptRunner:
    """
    Runs AppleScript source text with osascript.

    The script is passed on stdin so no shell quoting is involved.
    """

    def __init__(
        self,
        osascript_path: Optional[str] = None,
        timeout: Optional[float] = None,
        max_output_bytes: Optional[int] = None
    ):
        self.osascript_path = osascript_path or settings.OSASCRIPT_PATH
        self.timeout = timeout if timeout is not None else settings.APPLESCRIPT_TIMEOUT
        self.max_output_bytes = max_output_bytes or settings.max_output_bytes

    def run(self, script: str, operation: str = "script") -> str:
        """Run the script and return its trimmed standard output.

        Raises:
            ExecutionFailure: osascript is missing, timed out, exited non-zero,
                produced more output than allowed or output that is not UTF-8.
        """
        started = time.monotonic()
        try:
            returncode, stdout, stderr = self._execute(script)
            output = self._decode(returncode, stdout, stderr)
        except ExecutionFailure:
            log_script_execution(operation, (time.monotonic() - started) * 1000, False)
            raise

        log_script_execution(operation, (time.monotonic() - started) * 1000, True)
        return output.strip()

    def _execute(self, script: str) -> Tuple[int, bytes, bytes]:
        try:
            process = subprocess.Popen(
                [self.osascript_path, "-"],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionFailure(f"AppleScript error: {e}") from e

        timed_out = threading.Event()

        def kill_on_timeout():
            timed_out.set()
            process.kill()

        stderr_chunks: List[bytes] = []
        timer = threading.Timer(self.timeout, kill_on_timeout)
        stderr_reader = threading.Thread(
            target=_drain, args=(process.stderr, stderr_chunks, self.max_output_bytes), daemon=True
        )
        stdin_writer = threading.Thread(
            target=_feed, args=(process.stdin, script.encode("utf-8")), daemon=True
        )

        stdout = bytearray()
        timer.start()
        stderr_reader.start()
        stdin_writer.start()
        try:
            for chunk in iter(lambda: process.stdout.read1(CHUNK_SIZE), b""):
                stdout.extend(chunk)
                if len(stdout) > self.max_output_bytes:
                    raise ExecutionFailure(
                        f"AppleScript error: output exceeded {self.max_output_bytes} bytes"
                    )
            returncode = process.wait()
            stderr_reader.join()
        finally:
            timer.cancel()
            if process.poll() is None:
                process.kill()
                process.wait()
            process.stdout.close()

        if timed_out.is_set():
            logger.warning("AppleScript timed out", timeout=self.timeout)
            raise ExecutionFailure(f"AppleScript error: timed out after {self.timeout}s")

        return returncode, bytes(stdout), b"".join(stderr_chunks)

    @staticmethod
    def _decode(returncode: int, stdout: bytes, stderr: bytes) -> str:
        if returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise ExecutionFailure(
                f"AppleScript error: {message or f'osascript exited with status {returncode}'}"
            )

        try:
            return stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ExecutionFailure(f"AppleScript error: output is not valid UTF-8 ({e.reason})") from e
