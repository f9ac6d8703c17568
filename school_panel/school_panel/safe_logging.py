"""
Thread-safe logging handler for threaded WSGI workers (gunicorn gthread).

A plain StreamHandler can raise
    RuntimeError: reentrant call inside <_io.BufferedWriter name='<stderr>'>
when several threads write at once; writes here are serialized with a
process-wide RLock.
"""
import logging
import threading


class ThreadSafeStreamHandler(logging.StreamHandler):

    _write_lock = threading.RLock()

    def emit(self, record):
        try:
            msg = self.format(record)
            with self._write_lock:
                self.stream.write(msg + self.terminator)
                self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)
