"""
The keyword registry describes every keyword a device family understands.

Each keyword maps to a KeywordDescriptor that names the field the value is stored under,
whether the update addresses a channel, whether updates are published as events, and
the decoder used to turn the raw text value into an application value.

Keywords that are not in the registry are unknown to this client version. They are
tolerated, since newer controller firmware may report keywords an older client
doesn't understand.
"""
import math
from abc import abstractmethod

from sensorbox.support.mixins import CommonEqualityMixin, StringerMixin


class DecodeError(ValueError):
    """ Raised by a decoder in strict mode when an inbound value cannot be decoded. """


def camelize(keyword: str) -> str:
    """
    >>> camelize('AmbientTemperature')
    'ambientTemperature'
    >>> camelize('')
    ''
    """
    return keyword[:1].lower() + keyword[1:]


def parse_number(raw) -> float:
    """
    Parses a numeric value leniently. Surrounding whitespace is ignored. Anything that isn't
    a number is returned as nan.
    >>> parse_number(' 23.5 ')
    23.5
    >>> parse_number('abc')
    nan
    """
    if isinstance(raw, bool):
        return float(raw)
    try:
        return float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        return math.nan


def is_nan(value):
    return isinstance(value, float) and math.isnan(value)


def enum_names(enum, aliases=None) -> dict:
    """
    The upper-cased names accepted for the members of an IntEnum: the member names, and the
    aliases given as a mapping from alias to member.
    """
    names = {name.upper(): member for name, member in enum.__members__.items()}
    for alias, member in (aliases or {}).items():
        names[alias.upper()] = enum(member)
    return names


class Decoder:
    """
    Converts the raw text of an inbound update into an application value.
    """
    @abstractmethod
    def decode(self, raw, strict=False):
        """
        :param raw: the raw value, as received from the transport
        :param strict: when True, a value that cannot be decoded raises DecodeError, otherwise
            the value decodes to nan.
        """
        raise NotImplementedError


class NumberDecoder(Decoder, CommonEqualityMixin):

    def decode(self, raw, strict=False):
        value = parse_number(raw)
        if strict and is_nan(value):
            raise DecodeError("not a number: %r" % (raw,))
        return value


class StringDecoder(Decoder, CommonEqualityMixin):

    def decode(self, raw, strict=False):
        return raw if isinstance(raw, str) else str(raw)


class EnumDecoder(Decoder, CommonEqualityMixin):
    """
    Decodes a wire code into the canonical integer code of an IntEnum.
    Member names and aliases are accepted too, case-insensitively.
    """
    def __init__(self, enum, aliases=None):
        self.enum = enum
        self._names = enum_names(enum, aliases)

    def _lookup(self, raw):
        if isinstance(raw, str):
            member = self._names.get(raw.strip().upper())
            if member is not None:
                return int(member)
        code = parse_number(raw)
        if not is_nan(code) and code.is_integer():
            try:
                return int(self.enum(int(code)))
            except ValueError:
                pass
        return None

    def decode(self, raw, strict=False):
        code = self._lookup(raw)
        if code is None:
            if strict:
                raise DecodeError("not a %s: %r" % (self.enum.__name__, raw))
            return math.nan
        return code


number = NumberDecoder()
string = StringDecoder()


class KeywordDescriptor(CommonEqualityMixin, StringerMixin):
    """
    Describes how updates for a single keyword are stored and published.
    :param keyword: the keyword as it appears on the wire, e.g. 'TemperatureMax'
    :param indexed: True if the update targets a channel and carries a channel index
    :param emittable: True if applied updates are published as events
    :param decoder: converts the raw value. Defaults to a number.
    :param field: the name the value is stored and published under. Defaults to the camel-cased keyword.
    :param counts_channels: True for the keyword that reports the number of channels.
    """
    def __init__(self, keyword, indexed=False, emittable=False, decoder: Decoder=number, field=None,
                 counts_channels=False):
        self.keyword = keyword
        self.field = field or camelize(keyword)
        self.indexed = indexed
        self.emittable = emittable
        self.decoder = decoder
        self.counts_channels = counts_channels

    def decode(self, raw, strict=False):
        return self.decoder.decode(raw, strict)


class KeywordRegistry:
    """
    A fixed lookup table of keyword descriptors.
    """
    def __init__(self, descriptors):
        table = {}
        for d in descriptors:
            if d.keyword in table:
                raise ValueError("keyword %s is registered more than once" % d.keyword)
            table[d.keyword] = d
        self._descriptors = table

    def lookup(self, keyword) -> KeywordDescriptor:
        """ the descriptor for the keyword, or None if the keyword is not recognized. """
        return self._descriptors.get(keyword)

    def emittable(self, keyword) -> bool:
        d = self.lookup(keyword)
        return d is not None and d.emittable

    def keywords(self):
        return tuple(self._descriptors)

    def emittable_keywords(self):
        return tuple(k for k, d in self._descriptors.items() if d.emittable)

    def __contains__(self, keyword):
        return keyword in self._descriptors

    def __len__(self):
        return len(self._descriptors)

    def __iter__(self):
        return iter(self._descriptors.values())
