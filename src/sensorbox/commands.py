"""
Validation of outbound parameter-set commands.

A command is validated in full before anything is written or sent, so that a rejected
command leaves no channel configured.
"""
import math
from collections.abc import Iterable
from numbers import Real

from sensorbox.registry import enum_names


class ValidationError(ValueError):
    """ An outbound command value is outside the domain of the parameter. """


def normalize_indices(index):
    """
    Converts a single channel index or an iterable of indices to a tuple of ints.
    >>> normalize_indices(2)
    (2,)
    >>> normalize_indices([0, '1'])
    (0, 1)
    """
    indices = tuple(index) if isinstance(index, Iterable) and not isinstance(index, str) else (index,)
    return tuple(channel_index(i) for i in indices)


def channel_index(index):
    """ a non-negative integer channel index, from an int or numeric text. """
    if isinstance(index, bool):
        raise ValidationError("channel index must be an integer: %r" % (index,))
    try:
        number = float(index)
    except (TypeError, ValueError):
        raise ValidationError("channel index must be an integer: %r" % (index,))
    if not number.is_integer() or number < 0:
        raise ValidationError("channel index must be a non-negative integer: %r" % (index,))
    return int(number)


def validate_change_trigger(value) -> float:
    """
    A change trigger must be a finite number greater than or equal to 0.
    Numeric text is accepted.
    """
    if isinstance(value, bool):
        raise ValidationError("change trigger must be a number, not %r" % (value,))
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("change trigger must be a number, not %r" % (value,))
    if math.isnan(number) or math.isinf(number) or number < 0:
        raise ValidationError("change trigger must be a floating-point number greater than or equal to 0, "
                              "not %r" % (value,))
    return number


class EnumeratedValues:
    """
    The accepted inputs for an enumerated parameter.
    :param enum: an IntEnum whose values are the wire codes
    :param aliases: additional case-insensitive names, as a mapping from alias to enum member.
        The member names are always accepted.
    """
    def __init__(self, enum, aliases=None):
        self.enum = enum
        self._names = enum_names(enum, aliases)

    def aliases(self):
        return tuple(sorted(self._names))

    def codes(self):
        return tuple(int(member) for member in self.enum)

    def code_for(self, value) -> int:
        """
        Normalizes a value to the canonical wire code.
        :param value: an alias (case-insensitive), an enum member, or a wire code.
        :raises ValidationError: when the value isn't one of the accepted inputs.
        """
        if isinstance(value, str):
            member = self._names.get(value.strip().upper())
            if member is None:
                raise ValidationError("unsupported %s: %s" % (self.enum.__name__, value))
            return int(member)
        if isinstance(value, Real) and not isinstance(value, bool) and float(value).is_integer():
            try:
                return int(self.enum(int(value)))
            except ValueError:
                pass
        raise ValidationError("%s must be one of %s, not %r" % (self.enum.__name__, list(self.codes()), value))


def validate_enumerated(values: EnumeratedValues, value) -> int:
    return values.code_for(value)
