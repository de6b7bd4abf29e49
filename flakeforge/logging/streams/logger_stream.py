import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Any,
    Callable,
    Dict,
    TextIO,
    TypeVar,
)

import msgspec

from flakeforge.logging.config import LoggingConfig, StreamType
from flakeforge.logging.models import Entry, Log, LogLevel

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"
ERROR_TEMPLATE = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        models: dict[
            str,
            tuple[
                type[T],
                dict[str, Any],
            ]
        ] | None = None,
    ) -> None:
        if name is None:
            name = "default"

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._init_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._stdout: TextIO | None = None
        self._stderr: TextIO | None = None

        self._models: Dict[str, tuple[type[Entry], dict[str, Any]]] = {}

        if models is None:
            models = {}

        for model_name, config in models.items():
            model, defaults = config

            self._models[model_name] = (
                model,
                defaults
            )

        self._models.update({
            'default': (
                Entry,
                {
                    'level': LogLevel.INFO
                }
            )
        })

    @property
    def name(self):
        return self._name

    async def initialize(
        self,
        stdout_writer: TextIO | None = None,
        stderr_writer: TextIO | None = None,
    ):
        async with self._init_lock:

            if self._initialized:
                return

            if self._loop is None:
                self._loop = asyncio.get_running_loop()

            if stdout_writer:
                self._stdout = stdout_writer

            if stderr_writer:
                self._stderr = stderr_writer

            if self._cwd is None:
                self._cwd = await self._loop.run_in_executor(
                    None,
                    os.getcwd,
                )

            self._initialized = True

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        if self._initialized is False:
            await self.initialize()

        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._open_file,
                logfile_path,
            )

        if is_default:
            self._default_logfile_path = logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        logfile_directory = str(resolved_path.parent)
        path = str(resolved_path)

        if not os.path.exists(logfile_directory):
            os.makedirs(logfile_directory)

        if not os.path.exists(path):
            resolved_path.touch()

        self._files[logfile_path] = open(path, "ab+")

    async def close(self):
        await asyncio.gather(
            *[self._close_file(logfile_path) for logfile_path in self._files]
        )

        for writer in (self._stdout, self._stderr):
            if writer and writer.closed is False:
                writer.flush()

        self._initialized = False

    async def _close_file(self, logfile_path: str):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._close_file_at_path,
                logfile_path,
            )

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.close()

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        if filename_path.suffix != ".json":
            raise ValueError(
                f"Log file '{filename}' must be a JSON file."
            )

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd

        return os.path.join(directory, filename_path)

    def _get_std_stream(self, stream_type: StreamType) -> TextIO:
        # Resolved per write so redirected sys streams are honored.
        if stream_type == StreamType.STDOUT:
            return self._stdout or sys.stdout

        return self._stderr or sys.stderr

    async def log_prepared(
        self,
        message: str,
        name: str = 'default',
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = self._to_entry(message, name)

        await self.log(
            entry,
            template=template,
            path=path,
            filter=filter,
        )

    async def log(
        self,
        entry: T | Log[T],
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        filename: str | None = None
        directory: str | None = None

        if path:
            logfile_path = pathlib.Path(path)
            is_logfile = len(logfile_path.suffix) > 0

            filename = logfile_path.name if is_logfile else None
            directory = str(logfile_path.parent.absolute()) if is_logfile else str(logfile_path.absolute())

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        if filename or directory:
            await self._log_to_file(
                entry,
                filename=filename,
                directory=directory,
                filter=filter,
            )

        else:
            await self._log(
                entry,
                template=template,
                filter=filter,
            )

    def _to_entry(
        self,
        message: str,
        name: str,
    ):
        model, defaults = self._models.get(
            name,
            self._models.get('default')
        )

        return model(
            message=message,
            **defaults
        )

    async def _log(
        self,
        entry_or_log: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if isinstance(entry_or_log, Log):
            entry: Entry = entry_or_log.entry

        else:
            entry = entry_or_log

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if self._initialized is False:
            await self.initialize()

        if template is None:
            template = DEFAULT_TEMPLATE

        if isinstance(entry_or_log, Log):
            log_file = entry_or_log.filename
            line_number = entry_or_log.line_number
            function_name = entry_or_log.function_name

        else:
            log_file, line_number, function_name = self._find_caller()

        stream = self._get_std_stream(self._config.output)

        try:
            stream.write(
                entry.to_template(
                    template,
                    context={
                        "filename": log_file,
                        "function_name": function_name,
                        "line_number": line_number,
                        "thread_id": threading.get_native_id(),
                        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                    },
                )
                + "\n"
            )
            stream.flush()

        except (KeyError, IndexError, ValueError) as err:
            self._write_error(
                entry,
                err,
                log_file=log_file,
                line_number=line_number,
                function_name=function_name,
            )

    async def _log_to_file(
        self,
        entry_or_log: T | Log[T],
        filename: str | None = None,
        directory: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if isinstance(entry_or_log, Log):
            entry: Entry = entry_or_log.entry

        else:
            entry = entry_or_log

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if self._initialized is False:
            await self.initialize()

        if filename is None and self._default_logfile_path:
            logfile_path = self._default_logfile_path

        else:
            if filename is None:
                filename = "logs.json"

            if directory is None:
                directory = os.path.join(self._cwd, "logs")

            logfile_path = self._to_logfile_path(
                filename,
                directory=directory,
            )

        if self._files.get(logfile_path) is None or self._files[logfile_path].closed:
            await self.open_file(
                os.path.basename(logfile_path),
                directory=os.path.dirname(logfile_path),
            )

        if isinstance(entry_or_log, Log):
            log = entry_or_log

        else:
            log_file, line_number, function_name = self._find_caller()

            log = Log(
                entry=entry,
                filename=log_file,
                function_name=function_name,
                line_number=line_number
            )

        try:
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._write_to_file,
                    log,
                    logfile_path,
                )

        except (OSError, msgspec.EncodeError) as err:
            self._write_error(
                entry,
                err,
                log_file=log.filename,
                line_number=log.line_number,
                function_name=log.function_name,
            )

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and (
            logfile.closed is False
        ):
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    def _write_error(
        self,
        entry: Entry,
        err: Exception,
        log_file: str,
        line_number: int,
        function_name: str,
    ):
        stderr = self._get_std_stream(StreamType.STDERR)
        if stderr.closed:
            return

        stderr.write(
            entry.to_template(
                ERROR_TEMPLATE,
                context={
                    "filename": log_file,
                    "function_name": function_name,
                    "line_number": line_number,
                    "error": str(err),
                    "thread_id": threading.get_native_id(),
                    "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                },
            )
            + "\n"
        )

    def _find_caller(self):
        """
        Find the stack frame of the caller so that we can note the source
        file name, line number and function name.
        """
        frame = sys._getframe(3)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )
