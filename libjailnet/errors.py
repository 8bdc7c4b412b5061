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
"""Collection of libjailnet errors."""
import typing

# MyPy
import libjailnet.Logger  # noqa: F401


class JailNetException(Exception):
    """A well-known exception raised by libjailnet."""

    def __init__(
        self,
        message: str,
        level: str="error",
        silent: bool=False,
        append_warning: bool=False,
        warning: typing.Optional[str]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        if (logger is not None) and (silent is False):
            logger.__getattribute__(level)(message)
            if (append_warning is True) and (warning is not None):
                logger.warn(warning)
        super().__init__(message)


# Error kinds


class ValidationError(JailNetException, ValueError):
    """Raised when a request or value does not pass validation."""

    pass


class NotFoundError(JailNetException, LookupError):
    """Raised when a jail, attachment, object or file does not exist."""

    pass


class ExternalCommandError(JailNetException):
    """Raised when a host command (ifconfig, rctl, ...) fails."""

    pass


class JailNetIOError(JailNetException, OSError):
    """Raised when reading or writing a file fails."""

    pass


class StateConflictError(JailNetException):
    """Raised when an operation does not match the current jail state."""

    pass


# Host


class SecurityViolation(JailNetException):
    """Raised when libjailnet has security concerns."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"Security violation: {reason}"
        super().__init__(message=msg, logger=logger)


class InvalidLogLevel(ValidationError):
    """Raised when the logger was initialized with an invalid log level."""

    def __init__(
        self,
        log_level: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid log level: {log_level}"
        super().__init__(message=msg, logger=logger)


class HostConfigError(ValidationError):
    """Raised when the host configuration file cannot be used."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Invalid host configuration {path}: {reason}"
        super().__init__(message=msg, logger=logger)


# Identifiers


class InvalidJailId(ValidationError):
    """Raised when a jail id is outside of the supported range."""

    def __init__(
        self,
        ctid: typing.Any,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        msg = f"Invalid jail id: {ctid}"
        super().__init__(message=msg, logger=logger)


class IdentifierOutOfRange(ValidationError):
    """Raised when a number cannot be mapped to a unique token."""

    def __init__(
        self,
        value: int,
        length: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.value = value
        self.length = length
        msg = (
            f"Identifier {value} cannot be derived "
            f"with {length} letters without collisions"
        )
        super().__init__(message=msg, logger=logger)


class IdentifierLengthInsufficient(ValidationError):
    """Raised when a token length cannot cover the supported id range."""

    def __init__(
        self,
        length: int,
        maximum: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.length = length
        self.maximum = maximum
        msg = (
            f"A token length of {length} cannot uniquely represent "
            f"ids up to {maximum}"
        )
        super().__init__(message=msg, logger=logger)


# Addresses


class InvalidMacAddress(ValidationError):
    """Raised when a jail MAC address is invalid."""

    def __init__(
        self,
        mac_address: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        reason = f"invalid mac address: \"{mac_address}\""
        super().__init__(message=reason, logger=logger)


class InvalidIPAddress(ValidationError):
    """Raised when an invalid IP address was assigned to a network."""

    def __init__(
        self,
        reason: str,
        ipv6: bool,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        ip_version = 4 + 2 * (ipv6 is True)
        msg = f"Invalid IPv{ip_version} address: {reason}"
        super().__init__(message=msg, logger=logger)


class InvalidNetworkObject(ValidationError):
    """Raised when a network object has an invalid type or value."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid network object: {reason}"
        super().__init__(message=msg, logger=logger)


# Jails


class JailNotFound(NotFoundError):
    """Raised when the jail record does not exist."""

    def __init__(
        self,
        ctid: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        msg = f"Jail {ctid} does not exist"
        super().__init__(message=msg, logger=logger)


class JailAlreadyExists(ValidationError):
    """Raised when a jail record with the same id already exists."""

    def __init__(
        self,
        ctid: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        msg = f"Jail {ctid} already exists"
        super().__init__(message=msg, logger=logger)


class JailConfigNotFound(NotFoundError):
    """Raised when the jail configuration file does not exist."""

    def __init__(
        self,
        ctid: int,
        path: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        self.path = path
        msg = f"Configuration of jail {ctid} not found at {path}"
        super().__init__(message=msg, logger=logger)


class InvalidJailConfig(ValidationError):
    """Raised when a jail configuration file cannot be processed."""

    def __init__(
        self,
        ctid: int,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        msg = f"Invalid configuration of jail {ctid}: {reason}"
        super().__init__(message=msg, logger=logger)


class JailConfigReadError(JailNetIOError):
    """Raised when a jail configuration file cannot be read."""

    def __init__(
        self,
        ctid: int,
        path: str,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        self.path = path
        msg = f"Reading the configuration of jail {ctid} failed: {reason}"
        super().__init__(message=msg, logger=logger)


class JailConfigWriteError(JailNetIOError):
    """Raised when a jail configuration file cannot be written."""

    def __init__(
        self,
        ctid: int,
        path: str,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        self.path = path
        msg = f"Writing the configuration of jail {ctid} failed: {reason}"
        super().__init__(message=msg, logger=logger)


class RCConfError(JailNetIOError):
    """Raised when the rc.conf file of a jail cannot be updated."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Updating {path} failed: {reason}"
        super().__init__(message=msg, logger=logger)


class DatabaseError(JailNetIOError):
    """Raised when the database file cannot be read or written."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.path = path
        msg = f"Database {path} is unusable: {reason}"
        super().__init__(message=msg, logger=logger)


# Jail Network


class JailNetworkError:
    """Mixin that stores the jail, switch and field of a network error."""

    ctid: typing.Optional[int]
    switch_id: typing.Optional[int]
    field: typing.Optional[str]

    def _set_location(
        self,
        ctid: typing.Optional[int]=None,
        switch_id: typing.Optional[int]=None,
        field: typing.Optional[str]=None
    ) -> None:
        self.ctid = ctid
        self.switch_id = switch_id
        self.field = field


class InvalidInheritRequest(ValidationError, JailNetworkError):
    """Raised when network inheritance is requested without a protocol."""

    def __init__(
        self,
        ctid: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self._set_location(ctid=ctid)
        msg = (
            f"Jail {ctid} cannot inherit the host network: "
            "neither IPv4 nor IPv6 was requested"
        )
        super().__init__(message=msg, logger=logger)


class DuplicateSwitchAttachment(ValidationError, JailNetworkError):
    """Raised when a jail is attached to the same switch twice."""

    def __init__(
        self,
        ctid: int,
        switch_id: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self._set_location(ctid=ctid, switch_id=switch_id)
        msg = f"Jail {ctid} is already attached to switch {switch_id}"
        super().__init__(message=msg, logger=logger)


class MissingAddressPair(ValidationError, JailNetworkError):
    """Raised when a static address lacks its address or gateway."""

    def __init__(
        self,
        ctid: int,
        switch_id: int,
        field: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self._set_location(ctid=ctid, switch_id=switch_id, field=field)
        msg = (
            f"Jail {ctid} switch {switch_id}: {field} is required "
            "when no dynamic address configuration is enabled"
        )
        super().__init__(message=msg, logger=logger)


class NetworkObjectInUse(ValidationError, JailNetworkError):
    """Raised when an address object is already assigned elsewhere."""

    def __init__(
        self,
        object_id: int,
        ctid: typing.Optional[int]=None,
        switch_id: typing.Optional[int]=None,
        field: typing.Optional[str]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.object_id = object_id
        self._set_location(ctid=ctid, switch_id=switch_id, field=field)
        msg = f"Network object {object_id} is already in use"
        if ctid is not None:
            msg = f"Jail {ctid} switch {switch_id} {field}: {msg}"
        super().__init__(message=msg, logger=logger)


class JailNetworkInherited(StateConflictError, JailNetworkError):
    """Raised when attachments are changed while the network is inherited."""

    def __init__(
        self,
        ctid: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self._set_location(ctid=ctid)
        msg = (
            f"Jail {ctid} inherits the host network "
            "and cannot be attached to switches"
        )
        super().__init__(message=msg, logger=logger)


class AttachmentNotFound(NotFoundError, JailNetworkError):
    """Raised when a network attachment does not belong to the jail."""

    def __init__(
        self,
        ctid: int,
        attachment_id: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.attachment_id = attachment_id
        self._set_location(ctid=ctid)
        msg = f"Jail {ctid} has no network attachment {attachment_id}"
        super().__init__(message=msg, logger=logger)


class SwitchNotFound(NotFoundError, JailNetworkError):
    """Raised when a switch id is unknown."""

    def __init__(
        self,
        switch_id: int,
        ctid: typing.Optional[int]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self._set_location(ctid=ctid, switch_id=switch_id)
        msg = f"Switch {switch_id} does not exist"
        super().__init__(message=msg, logger=logger)


class NetworkObjectNotFound(NotFoundError):
    """Raised when a network object id is unknown."""

    def __init__(
        self,
        object_id: int,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.object_id = object_id
        msg = f"Network object {object_id} does not exist"
        super().__init__(message=msg, logger=logger)


class ObjectResolutionFailed(NotFoundError, JailNetworkError):
    """Raised when an attachment references an unresolvable object."""

    def __init__(
        self,
        ctid: int,
        switch_id: int,
        field: str,
        object_id: typing.Optional[int],
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.object_id = object_id
        self._set_location(ctid=ctid, switch_id=switch_id, field=field)
        msg = (
            f"Jail {ctid} switch {switch_id}: resolving {field} "
            f"(object {object_id}) failed: {reason}"
        )
        super().__init__(message=msg, logger=logger)


# Host commands


class CommandFailure(ExternalCommandError):
    """Raised when a host command exits with a non-zero return code."""

    def __init__(
        self,
        returncode: int,
        command: typing.Optional[str]=None,
        stderr: typing.Optional[str]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.returncode = returncode
        self.command = command
        self.stderr = stderr
        msg = f"Command exited with {returncode}"
        if command is not None:
            msg += f": {command}"
        super().__init__(message=msg, logger=logger)


class EpairProvisioningFailed(ExternalCommandError, JailNetworkError):
    """Raised when an epair device cannot be created or configured."""

    def __init__(
        self,
        epair: str,
        reason: str,
        ctid: typing.Optional[int]=None,
        switch_id: typing.Optional[int]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.epair = epair
        self._set_location(ctid=ctid, switch_id=switch_id)
        msg = f"Provisioning epair {epair} failed: {reason}"
        super().__init__(message=msg, logger=logger)


class EpairNotFound(ExternalCommandError):
    """Raised when an epair device to destroy does not exist."""

    def __init__(
        self,
        epair: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.epair = epair
        msg = f"Epair {epair} not found"
        super().__init__(message=msg, logger=logger)


class ResourceLimitActionFailed(ExternalCommandError):
    """Raised when a resource limit cannot be applied or queried."""

    def __init__(
        self,
        action: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to {action}"
        super().__init__(message=msg, logger=logger)


class StatsCollectionFailed(ExternalCommandError):
    """Raised when the resource usage of jails cannot be queried."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"Collecting jail statistics failed: {reason}"
        super().__init__(message=msg, logger=logger)


# Events


class EventAlreadyFinished(JailNetException):
    """Raised when a finished event should be started again."""

    def __init__(
        self,
        event: 'libjailnet.events.JailNetEvent',
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        msg = f"This {event.type} event is already finished"
        super().__init__(message=msg, logger=logger)
