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
Events reported by the generator methods of libjailnet.

Every transition yields an event when it begins and again when it ends,
fails or is skipped. Events of nested steps share a scope, which tracks
how many events are pending, so that the CLI can indent them.
"""
import typing
from timeit import default_timer as timer

import libjailnet.errors

RollbackStep = typing.Callable[[], None]


class Scope(list):
    """An independent event history scope."""

    pending_count: int

    def __init__(self) -> None:
        self.pending_count = 0
        super().__init__([])


class JailNetEvent:
    """The base event class of libjailnet."""

    identifier: typing.Optional[str] = None
    error: typing.Optional[typing.Union[bool, BaseException]]
    rollback_errors: typing.List[Exception]

    _started_at: typing.Optional[float] = None
    _stopped_at: typing.Optional[float] = None

    def __init__(
        self,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        self.scope = Scope() if (scope is None) else scope
        self.message = message

        self.pending = False
        self.skipped = False
        self.done = True
        self.reverted = False
        self.error = None
        self.rollback_errors = []
        self._rollback_steps: typing.List[RollbackStep] = []

        self.scope.append(self)
        self.number = len(self.scope)
        self.parent_count = self.scope.pending_count

    @property
    def type(self) -> str:
        """Return the event type, which is the class name of the event."""
        return type(self).__name__

    @property
    def duration(self) -> typing.Optional[float]:
        """Return the duration of finished events."""
        if (self._started_at is None) or (self._stopped_at is None):
            return None
        return self._stopped_at - self._started_at

    def get_state_string(
        self,
        error: str="failed",
        skipped: str="skipped",
        done: str="done",
        pending: str="pending"
    ) -> str:
        """Get a humanreadable string according to the event state."""
        if self.error is not None:
            return error
        if self.skipped is True:
            return skipped
        if self.done is True:
            return done
        return pending

    def add_rollback_step(self, method: RollbackStep) -> None:
        """Add a rollback step that is executed when the event fails."""
        self._rollback_steps.append(method)

    def rollback(self) -> None:
        """
        Run all rollback steps in reverse order.

        A failing step does not stop the remaining ones. Its error is
        kept in rollback_errors.
        """
        if self.reverted is True:
            return
        self.reverted = True

        steps = list(reversed(self._rollback_steps))
        self._rollback_steps = []
        for step in steps:
            try:
                step()
            except Exception as e:
                self.rollback_errors.append(e)

    def _start(self) -> None:
        if self._started_at is not None:
            raise libjailnet.errors.EventAlreadyFinished(event=self)
        self._started_at = float(timer())
        self.pending = True
        self.scope.pending_count += 1

    def _stop(self) -> None:
        if self.pending is False:
            return
        self._stopped_at = float(timer())
        self.pending = False
        self.scope.pending_count -= 1

    def _finish(self, message: typing.Optional[str]) -> 'JailNetEvent':
        if message is not None:
            self.message = message
        self._stop()
        self.parent_count = self.scope.pending_count
        return self

    def begin(self, message: typing.Optional[str]=None) -> 'JailNetEvent':
        """Begin an event."""
        if message is not None:
            self.message = message
        self._start()
        self.done = False
        self.parent_count = self.scope.pending_count - 1
        return self

    def end(self, message: typing.Optional[str]=None) -> 'JailNetEvent':
        """Successfully finish an event."""
        self.done = True
        return self._finish(message)

    def skip(self, message: typing.Optional[str]=None) -> 'JailNetEvent':
        """Mark an event as skipped."""
        self.skipped = True
        return self._finish(message)

    def fail(
        self,
        exception: typing.Union[bool, BaseException]=True,
        message: typing.Optional[str]=None
    ) -> 'JailNetEvent':
        """End an event with a failure and run its rollback steps."""
        self.error = exception
        self.rollback()
        return self._finish(message)


# Jail


class JailEvent(JailNetEvent):
    """Any event related to a jail."""

    ctid: int
    identifier: typing.Optional[str]

    def __init__(
        self,
        ctid: int,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:

        self.ctid = ctid
        self.identifier = str(ctid)
        JailNetEvent.__init__(self, message=message, scope=scope)


class JailNetworkEvent(JailEvent):
    """Any change of a jails network configuration."""

    pass


class JailNetworkInherit(JailNetworkEvent):
    """Let the jail share the host network stack."""

    pass


class JailNetworkDisinherit(JailNetworkEvent):
    """Isolate the jail from the host network stack."""

    pass


class JailNetworkAttach(JailNetworkEvent):
    """Attach the jail to a switch."""

    pass


class JailNetworkDetach(JailNetworkEvent):
    """Detach the jail from a switch."""

    pass


class JailNetworkRegenerate(JailNetworkEvent):
    """Regenerate the network directives of a jail configuration."""

    pass


class JailCreate(JailEvent):
    """Create the configuration and record of a jail."""

    pass


class JailDestroy(JailEvent):
    """Remove the configuration, epairs and record of a jail."""

    pass


class JailConfigWrite(JailEvent):
    """Persist the jail configuration file."""

    pass


class JailRCConfUpdate(JailEvent):
    """Remove stale network lines from the rc.conf file of a jail."""

    pass


class JailResourceLimitUpdate(JailEvent):
    """Change the memory limit hook of a jail configuration."""

    pass


class JailResourceLimitApply(JailEvent):
    """Apply the memory limit of a jail with rctl(8)."""

    pass


class JailCPUSetUpdate(JailEvent):
    """Change the cpuset hook of a jail configuration."""

    pass


class JailCPUSetApply(JailEvent):
    """Move a jail to its CPU cores with cpuset(1)."""

    pass


# Epairs


class EpairEvent(JailNetEvent):
    """Any event related to an epair device."""

    identifier: typing.Optional[str]

    def __init__(
        self,
        epair: str,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:

        self.identifier = epair
        JailNetEvent.__init__(self, message=message, scope=scope)


class EpairTeardown(EpairEvent):
    """Destroy the epair device of a network attachment."""

    pass


class EpairSync(JailNetEvent):
    """Ensure that every attached switch has its epair device."""

    identifier: typing.Optional[str] = None
