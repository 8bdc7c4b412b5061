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
"""Unit tests for the Identifier module."""
import pytest

import libjailnet.errors
import libjailnet.Identifier


class TestIdentifier(object):

	def test_derives_known_token(self) -> None:
		assert libjailnet.Identifier.derive(101) == "bzmci"

	def test_tokens_have_fixed_length(self) -> None:
		for value in (1, 26, 9999):
			token = libjailnet.Identifier.derive(value)
			assert len(token) == libjailnet.Identifier.DEFAULT_LENGTH
			assert token.isalpha() is True
			assert token.islower() is True

	def test_tokens_are_unique_for_all_jail_ids(self) -> None:
		tokens = set(
			libjailnet.Identifier.derive(x)
			for x in range(
				libjailnet.Identifier.MIN_CTID,
				libjailnet.Identifier.MAX_CTID + 1
			)
		)
		assert len(tokens) == libjailnet.Identifier.MAX_CTID

	def test_tokens_can_be_decoded(self) -> None:
		for value in (1, 101, 4711, 9999):
			token = libjailnet.Identifier.derive(value)
			assert libjailnet.Identifier.decode(token) == value

	def test_derive_is_stable(self) -> None:
		first = libjailnet.Identifier.derive(4711, length=6)
		second = libjailnet.Identifier.derive(4711, length=6)
		assert first == second
		assert len(first) == 6

	def test_rejects_insufficient_length(self) -> None:
		with pytest.raises(libjailnet.errors.IdentifierLengthInsufficient):
			libjailnet.Identifier.derive(1, length=2)

		with pytest.raises(libjailnet.errors.IdentifierLengthInsufficient):
			libjailnet.Identifier.derive(1, length=0)

	def test_rejects_values_out_of_range(self) -> None:
		capacity = libjailnet.Identifier.capacity(5)

		with pytest.raises(libjailnet.errors.IdentifierOutOfRange):
			libjailnet.Identifier.derive(-1)

		with pytest.raises(libjailnet.errors.IdentifierOutOfRange):
			libjailnet.Identifier.derive(capacity)

		with pytest.raises(libjailnet.errors.IdentifierOutOfRange):
			libjailnet.Identifier.derive(True)

	def test_validates_jail_ids(self) -> None:
		assert libjailnet.Identifier.validate_ctid("101") == 101

		for invalid_ctid in (0, 10000, "abc", None, True):
			with pytest.raises(libjailnet.errors.InvalidJailId):
				libjailnet.Identifier.validate_ctid(invalid_ctid)

		with pytest.raises(ValueError):
			libjailnet.Identifier.validate_ctid(-5)
