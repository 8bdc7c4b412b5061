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
"""Sample the CPU and memory usage of running jails."""
import collections
import json
import os
import subprocess  # nosec: B404
import time
import typing

import libjailnet.errors
import libjailnet.helpers
import libjailnet.helpers_object

HISTORY_LENGTH = 256

STATE_ACTIVE = "ACTIVE"
STATE_INACTIVE = "INACTIVE"


class JailUsage(typing.NamedTuple):
    """Current resource usage of a jail."""

    ctid: int
    state: str
    cpu_percent: float = 0.0
    memory_bytes: int = 0

    @property
    def active(self) -> bool:
        """Return True when the jail is running."""
        return self.state == STATE_ACTIVE


class JailUsageSample(typing.NamedTuple):
    """A single entry of the usage history of a jail."""

    timestamp: float
    cpu_percent: float
    memory_percent: float


get_logical_cores = libjailnet.helpers.get_logical_cores


def get_system_memory() -> int:
    """Return the physical memory of the host in bytes."""
    return int(os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES"))


def _parse_float(value: typing.Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class JailStats:
    """
    Collect resource usage samples of all jails.

    A collection cycle never waits for locks. When another cycle is still
    running the new one is skipped, jails that are locked by a running
    network transition are skipped for this cycle.
    """

    history: typing.Dict[int, typing.Deque[JailUsageSample]]

    def __init__(
        self,
        host: typing.Optional['libjailnet.Host.HostGenerator']=None,
        history_length: int=HISTORY_LENGTH,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.host = libjailnet.helpers_object.init_host(self, host)
        self.history_length = history_length
        self.history = {}

    def _exec(
        self,
        command: typing.List[str]
    ) -> typing.Tuple[typing.Optional[str], typing.Optional[str], int]:
        return libjailnet.helpers.exec(
            command,
            logger=self.logger,
            ignore_error=True,
            timeout=self.host.command_timeout,
            stderr=subprocess.DEVNULL
        )

    def get_jid(self, token: str) -> int:
        """Return the jid of a running jail or -1."""
        stdout, _, returncode = self._exec(
            ["/usr/sbin/jls", "-j", token, "jid"]
        )
        if returncode > 0:
            return -1
        try:
            return int(str(stdout).strip())
        except ValueError:
            return -1

    def query_processes(self) -> typing.List[typing.Dict[str, str]]:
        """Return jail id, CPU and RSS of all processes of the host."""
        stdout, _, returncode = self._exec(
            ["/bin/ps", "-axo", "jid,pcpu,rss", "--libxo", "json"]
        )
        if returncode > 0:
            raise libjailnet.errors.StatsCollectionFailed(
                reason=f"ps exited with {returncode}",
                logger=self.logger
            )
        try:
            data = json.loads(str(stdout))
            processes = data["process-information"]["process"]
        except (ValueError, KeyError, TypeError) as e:
            raise libjailnet.errors.StatsCollectionFailed(
                reason=f"invalid ps output: {e}",
                logger=self.logger
            )
        return list(processes)

    def get_usage(
        self,
        jail: 'libjailnet.Jail.Jail',
        processes: typing.Optional[typing.List[typing.Dict[str, str]]]=None
    ) -> JailUsage:
        """
        Return the current usage of a jail.

        The CPU usage is normalized to the cores the jail may use and
        capped at 100 percent.
        """
        jid = self.get_jid(jail.token)
        if jid < 0:
            return JailUsage(ctid=jail.ctid, state=STATE_INACTIVE)

        if processes is None:
            processes = self.query_processes()
        return self._sum_usage(jail, jid, processes)

    def _sum_usage(
        self,
        jail: 'libjailnet.Jail.Jail',
        jid: int,
        processes: typing.List[typing.Dict[str, str]]
    ) -> JailUsage:
        total_cpu = 0.0
        total_rss = 0.0
        for process in processes:
            if str(process.get("jail-id")) != str(jid):
                continue
            total_cpu += _parse_float(process.get("percent-cpu"))
            total_rss += _parse_float(process.get("rss"))

        if jail.cores > 0:
            allowed_cores = jail.cores
        else:
            allowed_cores = get_logical_cores()

        cpu_percent = min(total_cpu / allowed_cores, 100.0)
        return JailUsage(
            ctid=jail.ctid,
            state=STATE_ACTIVE,
            cpu_percent=round(cpu_percent, 2),
            memory_bytes=int(total_rss * 1024)
        )

    def _memory_percent(
        self,
        jail: 'libjailnet.Jail.Jail',
        usage: JailUsage
    ) -> float:
        if jail.memory > 0:
            percent = round(usage.memory_bytes / jail.memory * 100.0)
            return float(max(0, min(percent, 100)))
        system_memory = get_system_memory()
        return round(usage.memory_bytes / system_memory * 10000.0) / 100.0

    def collect(self) -> bool:
        """
        Store a usage sample of every running jail.

        Returns False when the cycle was skipped because another one is
        still running.
        """
        stats_lock = self.host.locks.stats_lock
        if stats_lock.acquire(blocking=False) is False:
            self.logger.debug("Statistics collection is busy - skipping")
            return False

        try:
            jails = self.host.database.list_jails()
            processes: typing.Optional[typing.List[typing.Dict[str, str]]]
            processes = None

            for jail in jails:
                lock = self.host.locks.try_acquire(jail.ctid)
                if lock is None:
                    self.logger.debug(f"Jail {jail.ctid} is busy - skipping")
                    continue
                try:
                    jid = self.get_jid(jail.token)
                    if jid < 0:
                        continue
                    if processes is None:
                        processes = self.query_processes()
                    usage = self._sum_usage(jail, jid, processes)
                finally:
                    lock.release()
                self._add_sample(jail.ctid, JailUsageSample(
                    timestamp=time.time(),
                    cpu_percent=usage.cpu_percent,
                    memory_percent=self._memory_percent(jail, usage)
                ))

            self.prune([jail.ctid for jail in jails])
        finally:
            stats_lock.release()
        return True

    def _add_sample(self, ctid: int, sample: JailUsageSample) -> None:
        if ctid not in self.history:
            self.history[ctid] = collections.deque(
                maxlen=self.history_length
            )
        self.history[ctid].append(sample)

    def prune(self, valid_ctids: typing.Iterable[int]) -> None:
        """Drop the history of jails that no longer exist."""
        valid = set(valid_ctids)
        for ctid in list(self.history.keys()):
            if ctid not in valid:
                del self.history[ctid]
                self.logger.spam(f"Dropped statistics of jail {ctid}")

    def get_history(
        self,
        ctid: int,
        limit: typing.Optional[int]=None
    ) -> typing.List[JailUsageSample]:
        """Return the newest samples of a jail, oldest first."""
        samples = list(self.history.get(ctid, []))
        if limit is not None:
            samples = samples[-limit:] if (limit > 0) else []
        return samples
