#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import copy
import inspect
import textwrap

from packaging.version import InvalidVersion, Version

from cgibridge import SERVER_SOFTWARE
from cgibridge import util
from cgibridge.errors import ConfigError

KNOWN_SETTINGS = []

NETWORK_PROTOCOLS = ("http", "https")
SERVER_PROTOCOL_VERSIONS = [Version(v) for v in ("1.0", "1.1", "2", "3")]


def make_settings(ignore=None):
    settings = {}
    ignore = ignore or ()
    for s in KNOWN_SETTINGS:
        setting = s()
        if setting.name in ignore:
            continue
        settings[setting.name] = setting.copy()
    return settings


class Config(object):
    """Execution options for one CGI invocation.

    Every setting is readable as an attribute and validated when set.
    Settings cannot be assigned as attributes; use :meth:`set` or pass
    them as keyword arguments.
    """

    def __init__(self, **kwargs):
        self.settings = make_settings()
        for name, value in kwargs.items():
            self.set(name, value)

    def __str__(self):
        lines = []
        kmax = max(len(k) for k in self.settings)
        for k in sorted(self.settings):
            v = self.settings[k].value
            lines.append("{k:{kmax}} = {v}".format(k=k, v=v, kmax=kmax))
        return "\n".join(lines)

    def __getattr__(self, name):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        return self.settings[name].get()

    def __setattr__(self, name, value):
        if name != "settings" and name in self.settings:
            raise AttributeError("Invalid access!")
        super().__setattr__(name, value)

    def set(self, name, value):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        self.settings[name].set(value)

    def copy(self, **overrides):
        """Return a new config with the same values, plus ``overrides``."""
        cfg = Config()
        for name, setting in self.settings.items():
            cfg.settings[name].value = copy.copy(setting.value)
        for name, value in overrides.items():
            cfg.set(name, value)
        return cfg

    @property
    def responder_class(self):
        uri = self.settings['responder_class'].get()
        if uri is None:
            uri = "streaming" if self.streaming else "batch"
        return util.load_class(uri)


class SettingMeta(type):
    def __new__(cls, name, bases, attrs):
        super_new = super().__new__
        parents = [b for b in bases if isinstance(b, SettingMeta)]
        if not parents:
            return super_new(cls, name, bases, attrs)

        attrs["order"] = len(KNOWN_SETTINGS)
        attrs["validator"] = staticmethod(attrs["validator"])

        new_class = super_new(cls, name, bases, attrs)
        new_class.fmt_desc(attrs.get("desc", ""))
        KNOWN_SETTINGS.append(new_class)
        return new_class

    def fmt_desc(cls, desc):
        desc = textwrap.dedent(desc).strip()
        setattr(cls, "desc", desc)
        setattr(cls, "short", desc.splitlines()[0])


class Setting(object, metaclass=SettingMeta):
    name = None
    value = None
    section = None
    validator = None
    default = None
    short = None
    desc = None

    def __init__(self):
        if self.default is not None:
            self.set(self.default)

    def copy(self):
        return copy.copy(self)

    def get(self):
        return self.value

    def set(self, val):
        if not callable(self.validator):
            raise TypeError('Invalid validator: %s' % self.name)
        self.value = self.validator(val)

    def __repr__(self):
        return "<%s.%s object at %x with value %r>" % (
            self.__class__.__module__,
            self.__class__.__name__,
            id(self),
            self.value,
        )


def validate_bool(val):
    if val is None:
        return None

    if isinstance(val, bool):
        return val
    if not isinstance(val, str):
        raise TypeError("Invalid type for casting: %s" % val)
    if val.lower().strip() == "true":
        return True
    elif val.lower().strip() == "false":
        return False
    else:
        raise ValueError("Invalid boolean: %s" % val)


def validate_dict(val):
    if not isinstance(val, dict):
        raise TypeError("Value is not a dictionary: %s " % val)
    for k, v in val.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise TypeError("Environment entries must be strings: %r=%r" % (
                k, v))
    return val


def validate_pos_int(val):
    if not isinstance(val, int):
        val = int(val, 0)
    else:
        # Booleans are ints!
        val = int(val)
    if val < 0:
        raise ValueError("Value must be positive: %s" % val)
    return val


def validate_string(val):
    if val is None:
        return None
    if not isinstance(val, str):
        raise TypeError("Not a string: %s" % val)
    return val.strip()


def validate_port(val):
    if val is None:
        return None
    if isinstance(val, int) and not isinstance(val, bool):
        val = str(val)
    val = validate_string(val)
    if not val.isdigit():
        raise ConfigError("%r is not a valid port number." % val)
    return val


def validate_network_protocol(val):
    val = validate_string(val)
    if val is None:
        return None
    val = val.lower()
    if val not in NETWORK_PROTOCOLS:
        raise ConfigError("Invalid network protocol: %r" % val)
    return val


def validate_server_protocol(val):
    val = validate_string(val)
    if val is None:
        return None

    name, _, version = val.partition("/")
    if name.upper() != "HTTP" or not version:
        raise ConfigError("Invalid server protocol: %r" % val)
    try:
        parsed = Version(version)
    except InvalidVersion:
        raise ConfigError(
            "Invalid server protocol version: %r" % val) from None
    if parsed not in SERVER_PROTOCOL_VERSIONS:
        raise ConfigError("Unsupported server protocol: %r" % val)

    if parsed.major >= 2:
        return "HTTP/%d" % parsed.major
    return "HTTP/%d.%d" % (parsed.major, parsed.minor)


def validate_class(val):
    if inspect.isfunction(val) or inspect.ismethod(val):
        val = val()
    if inspect.isclass(val):
        return val
    return validate_string(val)


class Streaming(Setting):
    name = "streaming"
    section = "Response"
    validator = validate_bool
    default = False
    desc = """\
        Forward the program output as it is produced.

        When false (the default) the whole output is collected before the
        response is built, which allows ``Content-Length`` and the
        ``X-CGI-*`` diagnostic headers. When true the header block is
        located within ``header_limit`` bytes and the body is streamed.
        """


class ResponderClass(Setting):
    name = "responder_class"
    section = "Response"
    validator = validate_class
    default = None
    desc = """\
        The responder used to turn program output into a response.

        Overrides ``streaming``. A class, one of the bundled names
        ``batch`` or ``streaming``, a dotted path such as
        ``cgibridge.responders.StreamingResponder``, or an entry point
        in the ``cgibridge.responders`` group (``egg:dist#name``).
        """


class HeaderLimit(Setting):
    name = "header_limit"
    section = "Response"
    validator = validate_pos_int
    default = 16384
    desc = """\
        Bytes of output searched for the header block in streaming mode.

        Output whose header block is not terminated within this many bytes
        is forwarded unchanged as ``application/octet-stream``.
        """


class StderrHeaderLimit(Setting):
    name = "stderr_header_limit"
    section = "Response"
    validator = validate_pos_int
    default = 1024
    desc = """\
        Maximum length of the ``X-CGI-StdErr`` diagnostic header.
        """


class Env(Setting):
    name = "env"
    section = "Environment"
    validator = validate_dict
    default = {}
    desc = """\
        Extra environment variables for the CGI program.

        These never override the standard CGI variables computed from the
        request; such entries are dropped with a warning.
        """


class InheritEnv(Setting):
    name = "inherit_env"
    section = "Environment"
    validator = validate_bool
    default = True
    desc = """\
        Start the CGI program with a copy of this process environment.
        """


class ServerSoftware(Setting):
    name = "server_software"
    section = "Environment"
    validator = validate_string
    default = SERVER_SOFTWARE
    desc = """\
        Value of ``SERVER_SOFTWARE``.
        """


class ServerProtocol(Setting):
    name = "server_protocol"
    section = "Environment"
    validator = validate_server_protocol
    default = "HTTP/1.1"
    desc = """\
        Value of ``SERVER_PROTOCOL``.

        One of ``HTTP/1.0``, ``HTTP/1.1``, ``HTTP/2`` or ``HTTP/3``.
        """


class ServerPort(Setting):
    name = "server_port"
    section = "Environment"
    validator = validate_port
    default = None
    desc = """\
        Value of ``SERVER_PORT``.

        Detected from the ``Host`` header and the network protocol when
        unset.
        """


class RemoteAddr(Setting):
    name = "remote_addr"
    section = "Environment"
    validator = validate_string
    default = None
    desc = """\
        Value of ``REMOTE_ADDR``. Empty when unset.
        """


class RemoteHost(Setting):
    name = "remote_host"
    section = "Environment"
    validator = validate_string
    default = None
    desc = """\
        Value of ``REMOTE_HOST``. Empty when unset.
        """


class ScriptName(Setting):
    name = "script_name"
    section = "Environment"
    validator = validate_string
    default = None
    desc = """\
        Value of ``SCRIPT_NAME``. Empty when unset.
        """


class PathInfo(Setting):
    name = "path_info"
    section = "Environment"
    validator = validate_string
    default = None
    desc = """\
        Value of ``PATH_INFO``. Empty when unset.
        """


class PathTranslated(Setting):
    name = "path_translated"
    section = "Environment"
    validator = validate_string
    default = None
    desc = """\
        Value of ``PATH_TRANSLATED``. Empty when unset.
        """


class NetworkProtocol(Setting):
    name = "network_protocol"
    section = "Environment"
    validator = validate_network_protocol
    default = None
    desc = """\
        Network protocol used to pick a default ``SERVER_PORT``.

        ``http`` or ``https``. Detected from the request URL when unset.
        """
