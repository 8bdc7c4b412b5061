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
"""Attach the shared logger and host to libjailnet objects."""
import typing

import libjailnet.Logger


def init_logger(
    self: typing.Any,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> 'libjailnet.Logger.Logger':
    """Return the logger of an object and attach one if it has none."""
    existing_logger = getattr(self, "logger", None)
    if existing_logger is not None:
        return existing_logger

    if logger is None:
        logger = libjailnet.Logger.Logger()
    object.__setattr__(self, "logger", logger)
    return logger


def init_host(
    self: typing.Any,
    host: typing.Optional['libjailnet.Host.HostGenerator']=None
) -> 'libjailnet.Host.HostGenerator':
    """Return the given host or a new one sharing the object logger."""
    existing_host = getattr(self, "host", None)
    if existing_host is not None:
        return existing_host

    import libjailnet.Host
    if host is None:
        return libjailnet.Host.HostGenerator(logger=self.logger)
    if isinstance(host, libjailnet.Host.HostGenerator) is False:
        raise TypeError(f"Expected a HostGenerator, got {type(host)}")
    return host
