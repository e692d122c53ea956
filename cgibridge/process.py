#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Lifecycle of one CGI child process.

The child is started with piped standard streams. Feeding the request
body into stdin runs as a detached task: it never blocks the response
and its failures are logged and discarded, never raised. A program may
answer and exit without reading its input, so a broken pipe there is
not an error of the invocation.
"""

import asyncio
import logging

from cgibridge.errors import SpawnError

log = logging.getLogger(__name__)

# Strong references to detached tasks until they finish.
_background_tasks = set()


def run_in_background(coro, name=None):
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def _read_all(stream):
    if stream is None:
        return b""
    return await stream.read()


class CGIProcess(object):
    """Handle on a running CGI program.

    Owned by a single request. ``stderr`` is None in streaming mode.
    """

    def __init__(self, proc, command):
        self.proc = proc
        self.command = command
        self.pid = proc.pid
        self.pump = None

    def __repr__(self):
        return "<CGIProcess %r pid=%s>" % (self.command, self.pid)

    @property
    def stdin(self):
        return self.proc.stdin

    @property
    def stdout(self):
        return self.proc.stdout

    @property
    def stderr(self):
        return self.proc.stderr

    @property
    def returncode(self):
        return self.proc.returncode

    def start_pump(self, body):
        self.pump = run_in_background(self.pump_body(body),
                                      name="cgi-stdin-%s" % self.pid)
        return self.pump

    async def pump_body(self, body):
        """Copy the request body into the child's stdin, then close it.

        Never raises except on cancellation.
        """
        try:
            if body is not None:
                async for chunk in body:
                    self.stdin.write(chunk)
                    await self.stdin.drain()
        except Exception as e:
            log.debug("Stopped feeding request body to %r: %s", self, e)
        finally:
            self.close_stdin()
            aclose = getattr(body, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as e:
                    log.debug("Error closing request body: %s", e)

    def close_stdin(self):
        stdin = self.stdin
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.close()
        except OSError as e:
            log.debug("Error closing stdin of %r: %s", self, e)

    async def wait(self):
        return await self.proc.wait()

    async def communicate(self):
        """Collect stdout, stderr and the exit code of the child."""
        stdout, stderr = await asyncio.gather(
            _read_all(self.stdout), _read_all(self.stderr))
        returncode = await self.proc.wait()
        return stdout, stderr, returncode

    def terminate(self):
        """Stop feeding the child and terminate it if it still runs."""
        if self.pump is not None and not self.pump.done():
            self.pump.cancel()
        if self.proc.returncode is not None:
            return
        try:
            self.proc.terminate()
        except ProcessLookupError:
            pass


async def spawn(command, args, env, body=None, streaming=False):
    """Start ``command`` and begin feeding it ``body``.

    stderr is collected in batch mode and discarded in streaming mode,
    where nobody would read it. Raises :class:`SpawnError` when the
    program cannot be started.
    """
    stderr = asyncio.subprocess.DEVNULL if streaming \
        else asyncio.subprocess.PIPE
    try:
        proc = await asyncio.create_subprocess_exec(
            command, *(args or ()),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=stderr,
            env=env,
        )
    except OSError as e:
        raise SpawnError(command, e) from e

    child = CGIProcess(proc, command)
    log.debug("Spawned CGI program %r (pid %s)", command, child.pid)
    child.start_pump(body)
    return child
