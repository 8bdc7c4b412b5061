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
"""Command line interface of libjailnet."""
import os
import re
import signal
import sys
import typing

import click

import libjailnet
import libjailnet.errors
import libjailnet.events
import libjailnet.Host
import libjailnet.Logger

logger = libjailnet.Logger.Logger()

JAILNET_CMD_FOLDER = os.path.abspath(os.path.dirname(__file__))

# a closed pipe (for example when piping into head) is no error
signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def print_events(
    generator: typing.Iterable['libjailnet.events.JailNetEvent']
) -> None:
    """Print every finished event of a generator."""
    for event in generator:

        if event.pending is True:
            continue

        name = event.type
        if event.identifier is not None:
            name += f"@{event.identifier}"

        output = f"[+] {name}: "

        if event.message is not None:
            output += event.message
        else:
            output += event.get_state_string(
                done="OK",
                error="FAILED",
                skipped="SKIPPED",
                pending="..."
            )

        if event.duration is not None:
            output += " [" + str(round(event.duration, 3)) + "s]"

        logger.screen(output, indent=event.parent_count)


def run_events(
    generator: typing.Iterable['libjailnet.events.JailNetEvent']
) -> None:
    """Print events and exit with an error when the operation failed."""
    try:
        print_events(generator)
    except libjailnet.errors.JailNetException:
        sys.exit(1)


class JailNetCLI(click.Group):
    """Load the commands from the modules of the cli directory."""

    def list_commands(self, ctx: click.Context) -> typing.List[str]:
        """Return the names of all command modules."""
        rv = []

        for filename in os.listdir(JAILNET_CMD_FOLDER):
            if filename.endswith('.py') and \
                    not filename.startswith('__init__'):
                rv.append(re.sub(".py$", "", filename))
        rv.sort()

        return rv

    def get_command(
        self,
        ctx: click.Context,
        name: str
    ) -> typing.Optional[click.Command]:
        """Import the command module and return its cli definition."""
        try:
            mod = __import__(f"libjailnet.cli.{name}", None, None, ["cli"])
        except ImportError:
            return None

        is_root_command = getattr(mod, "__rootcmd__", False)
        if (is_root_command is True) and ("--help" not in sys.argv[1:]):
            if os.geteuid() != 0:
                logger.error(
                    f"You need to have root privileges to run {name}"
                )
                sys.exit(1)

        return getattr(mod, "cli", None)


def get_host(ctx: click.Context) -> 'libjailnet.Host.HostGenerator':
    """Return the host of the root command context."""
    root = ctx.find_root()
    return typing.cast(libjailnet.Host.HostGenerator, root.host)


@click.command(cls=JailNetCLI)
@click.option("--log-level", "-d", default=None)
@click.option(
    "--config", "-c", "config_file",
    default=None,
    help="Path to the host configuration file."
)
@click.version_option(version=libjailnet.VERSION, prog_name="jailnet")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: typing.Optional[str],
    config_file: typing.Optional[str]
) -> None:
    """Synthesize the network configuration of FreeBSD jails."""
    try:
        host_config = libjailnet.Host.HostConfig(
            file=config_file,
            logger=logger
        )
        if log_level is None:
            log_level = host_config["log_level"]
        logger.print_level = log_level
    except libjailnet.errors.JailNetException as e:
        logger.error(str(e))
        sys.exit(1)

    ctx.logger = logger
    ctx.print_events = print_events
    ctx.host = libjailnet.Host.HostGenerator(
        config=host_config,
        logger=logger
    )


def get_jail_network(
    ctx: click.Context,
    ctid: int
) -> 'libjailnet.JailNetwork.JailNetworkGenerator':
    """Return the network synthesizer of a jail or exit."""
    import libjailnet.JailNetwork
    try:
        return libjailnet.JailNetwork.JailNetworkGenerator(
            ctid,
            host=get_host(ctx),
            logger=logger
        )
    except libjailnet.errors.JailNetException:
        sys.exit(1)
