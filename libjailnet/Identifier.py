# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""
Derive short letter tokens from numeric jail ids.

The tokens name the host side epair interfaces (`<token>_<switch>a`) and
the resource limit handles (`jail:<token>:...`) of a jail. Each numeric id
is scrambled with an affine permutation modulo 26^length and written as a
fixed width base-26 number using lowercase letters. The permutation is a
bijection, so two ids below 26^length never share a token.
"""
import typing

import libjailnet.errors

LETTERS = "abcdefghijklmnopqrstuvwxyz"
BASE = len(LETTERS)

DEFAULT_LENGTH = 5
MIN_CTID = 1
MAX_CTID = 9999

# must stay coprime to BASE
MULTIPLIER = 7919
OFFSET = 104729


def capacity(length: int) -> int:
    """Return the number of distinct tokens of the given length."""
    return int(BASE ** length)


def require_length(
    length: int,
    maximum: int=MAX_CTID,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> None:
    """Raise when a token length cannot represent all ids up to maximum."""
    if (isinstance(length, int) is False) or (length < 1):
        raise libjailnet.errors.IdentifierLengthInsufficient(
            length=length,
            maximum=maximum,
            logger=logger
        )
    if capacity(length) <= maximum:
        raise libjailnet.errors.IdentifierLengthInsufficient(
            length=length,
            maximum=maximum,
            logger=logger
        )


def validate_ctid(
    ctid: typing.Any,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> int:
    """Return the ctid as int or raise InvalidJailId."""
    if isinstance(ctid, bool):
        raise libjailnet.errors.InvalidJailId(ctid=ctid, logger=logger)
    try:
        value = int(ctid)
    except (TypeError, ValueError):
        raise libjailnet.errors.InvalidJailId(ctid=ctid, logger=logger)
    if (value < MIN_CTID) or (value > MAX_CTID):
        raise libjailnet.errors.InvalidJailId(ctid=ctid, logger=logger)
    return value


def _permute(value: int, length: int) -> int:
    return (value * MULTIPLIER + OFFSET) % capacity(length)


def _encode(value: int, length: int) -> str:
    out = []
    for _ in range(length):
        value, digit = divmod(value, BASE)
        out.append(LETTERS[digit])
    return "".join(reversed(out))


def derive(
    value: int,
    length: int=DEFAULT_LENGTH,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> str:
    """
    Return the token of a numeric id.

    Args:

        value (int):
            A non-negative id smaller than 26^length.

        length (int): (default=5)
            Number of letters. The length must be able to represent every
            supported jail id (1 - 9999) without collisions.

    The result is stable across restarts and hosts.
    """
    require_length(length, logger=logger)

    if isinstance(value, bool) or (isinstance(value, int) is False):
        raise libjailnet.errors.IdentifierOutOfRange(
            value=value,
            length=length,
            logger=logger
        )

    if (value < 0) or (value >= capacity(length)):
        raise libjailnet.errors.IdentifierOutOfRange(
            value=value,
            length=length,
            logger=logger
        )

    return _encode(_permute(value, length), length)


def decode(token: str) -> int:
    """Return the numeric id a token was derived from."""
    length = len(token)
    require_length(length)
    scrambled = 0
    for char in token:
        digit = LETTERS.find(char)
        if digit < 0:
            raise ValueError(f"Invalid identifier token: {token}")
        scrambled = scrambled * BASE + digit
    modulus = capacity(length)
    inverse = pow(MULTIPLIER, -1, modulus)
    return ((scrambled - OFFSET) * inverse) % modulus


require_length(DEFAULT_LENGTH)
