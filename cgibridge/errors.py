#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

# We don't need to call super() in __init__ methods of our
# BaseException and Exception classes because we also define
# our own __str__ methods so there is no need to pass 'message'
# to the base class to get a meaningful output from 'str(exc)'.
# pylint: disable=super-init-not-called


class CGIError(Exception):
    """Base exception for CGI invocation errors."""


class SpawnError(CGIError):
    """Raised when the CGI program cannot be launched at all."""

    def __init__(self, command, reason=None):
        self.command = command
        self.reason = reason
        self.errno = getattr(reason, "errno", None)

    def __str__(self):
        if self.reason is None:
            return "Failed to launch CGI program %r" % self.command
        return "Failed to launch CGI program %r: %s" % (self.command,
                                                        self.reason)


class ConfigError(Exception):
    """ Exception raised on config error """
