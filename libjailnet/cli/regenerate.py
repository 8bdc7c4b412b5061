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
"""Regenerate the network configuration of jails with the CLI."""
import sys
import typing

import click

from . import get_host, get_jail_network, run_events

__rootcmd__ = True


@click.command(
    name="regenerate",
    help="Rewrite the network directives of jails from the database."
)
@click.pass_context
@click.option("--all", "-a", "_all", is_flag=True, default=False,
              help="Regenerate all jails.")
@click.argument("ctids", nargs=-1, type=int)
def cli(
    ctx: click.Context,
    _all: bool,
    ctids: typing.Tuple[int, ...]
) -> None:
    """Regenerate the network directives of one or many jails."""
    logger = ctx.parent.logger

    if _all is True:
        if len(ctids) > 0:
            logger.error("Cannot use --all and jail ids simultaneously")
            sys.exit(1)
        ctids = tuple([x.ctid for x in get_host(ctx).database.list_jails()])
    elif len(ctids) == 0:
        logger.error("No jail id provided")
        sys.exit(1)

    for ctid in ctids:
        run_events(get_jail_network(ctx, ctid).regenerate())
