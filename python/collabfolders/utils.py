"""
Utility functions and classes for file reading and writing and for logging
"""
from collections import OrderedDict
import json, os, threading, logging
try:
    import fcntl
except ImportError:
    fcntl = None

utilslog = logging.getLogger("collabfolders.utils")
BLAB = logging.DEBUG - 1

__all__ = [ 'LockedFile', 'read_json', 'write_json', 'blab', 'BLAB' ]

def blab(log, msg, *args, **kwargs):
    """
    log a verbose message. This uses a log level, BLAB, that is lower than DEBUG; in other
    words when a log's level is set to DEBUG, this message will not be displayed.  This is
    intended for messages that would appear voluminously if the level were set to BLAB.
    """
    log.log(BLAB, msg, *args, **kwargs)

class LockedFile(object):
    """
    An object representing a file in a locked state.  The file is locked against
    simultaneous accesses across both threads and processes.

    The easiest way to use this class is via the with statement.  For example,
    to read a file with a shared lock (many reads, no writes):
    .. code-block:: python

       with LockedFile(filename) as fd:
           data = json.load(fd)

    And to write a file with an exclusive write (no other simultaneous reads
    or writes):
    .. code-block:: python

       with LockedFile(filename, 'w') as fd:
           json.dump(data, fd)
    """
    _thread_locks = {}
    _class_lock = threading.RLock()

    class _ThreadLock(object):
        def __init__(self):
            self._reader_count = 0
            self.ex_lock = threading.Lock()
            self.sh_lock = threading.Lock()
        def acquire_shared(self):
            with self.ex_lock:
                if not self._reader_count:
                    self.sh_lock.acquire()
                self._reader_count += 1
        def release_shared(self):
            with self.ex_lock:
                if self._reader_count > 0:
                    self._reader_count -= 1
                if self._reader_count <= 0:
                    self.sh_lock.release()
        def acquire_exclusive(self):
            with self.sh_lock:
                self.ex_lock.acquire()
        def release_exclusive(self):
            self.ex_lock.release()

    @classmethod
    def _get_thread_lock_for(cls, filepath):
        filepath = os.path.abspath(filepath)
        with cls._class_lock:
            if filepath not in cls._thread_locks:
                cls._thread_locks[filepath] = cls._ThreadLock()
            return cls._thread_locks[filepath]

    def __init__(self, filename, mode='r'):
        self.mode = mode
        self._fo = None
        self._fname = filename
        self._thread_lock = self._get_thread_lock_for(filename)
        self._writing = None

    @property
    def fo(self):
        """
        the open file object or None if the file is not currently open
        """
        return self._fo

    def open(self, mode=None):
        """
        Open the file so that it is appropriately locked.  If mode is not provided, the mode
        will be the value set when this object was created.
        """
        if self._fo:
            raise RuntimeError(str(self._fname)+": file is already open")
        if mode:
            self.mode = mode

        self._writing = 'a' in self.mode or 'w' in self.mode or '+' in self.mode
        if self._writing:
            self._thread_lock.acquire_exclusive()
        else:
            self._thread_lock.acquire_shared()
        try:
            self._fo = open(self._fname, self.mode)
        except Exception:
            self._release_thread_lock()
            self._writing = None
            raise

        if fcntl:
            lock_type = (self._writing and fcntl.LOCK_EX) or fcntl.LOCK_SH
            fcntl.lockf(self._fo, lock_type)
        return self._fo

    def _release_thread_lock(self):
        if self._writing:
            self._thread_lock.release_exclusive()
        else:
            self._thread_lock.release_shared()

    def close(self):
        if not self._fo:
            return
        try:
            self._fo.close()
        finally:
            self._fo = None
            self._release_thread_lock()
            self._writing = None

    def __enter__(self):
        return self.open()

    def __exit__(self, e1, e2, e3):
        self.close()
        return False

def read_json(jsonfile, log=None):
    """
    read the JSON data from the specified file while holding a shared lock

    :raise IOError:  if there is an error while acquiring the lock or reading the file contents
    :raise ValueError:  if JSON format errors are detected.
    """
    if not log:
        log = utilslog
    with LockedFile(jsonfile) as fd:
        blab(log, "Acquired shared lock for reading: %s", str(jsonfile))
        out = json.load(fd, object_pairs_hook=OrderedDict)
    return out

def write_json(jsdata, destfile, indent=4, log=None):
    """
    write out the given JSON data into a file with pretty print formatting while holding an
    exclusive lock

    :param dict jsdata:    the JSON data to write
    :param str  destfile:  the path to the file to write the data to
    :param int  indent:    the number of characters to use for indentation (default: 4).
    :raise IOError:  if the file cannot be written
    """
    if not log:
        log = utilslog
    with LockedFile(destfile, 'a') as fd:
        blab(log, "Acquired exclusive lock for writing: %s", str(destfile))
        fd.truncate(0)
        json.dump(jsdata, fd, indent=indent, separators=(',', ': '))
