##############################################################################
#
# Copyright (c) 2003 Zope Corporation and Contributors.
# All Rights Reserved.
#
# This software is subject to the provisions of the Zope Public License,
# Version 2.1 (ZPL).  A copy of the ZPL should accompany this distribution.
# THIS SOFTWARE IS PROVIDED "AS IS" AND ANY AND ALL EXPRESS OR IMPLIED
# WARRANTIES ARE DISCLAIMED, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF TITLE, MERCHANTABILITY, AGAINST INFRINGEMENT, AND FITNESS
# FOR A PARTICULAR PURPOSE.
#
##############################################################################
"""Resolution of the SMTP target for one delivery attempt."""
import logging
import os
from collections import namedtuple

from zope.interface import implementer

from sendmessage.errors import MissingHostError
from sendmessage.interfaces import IDefaultHostProvider

DEFAULT_HOST_VARIABLE = 'SMTP_SERVER'


class Credential(namedtuple('Credential', 'username password')):
    __slots__ = ()

    def __repr__(self):
        return 'Credential(username=%r, password=***)' % (self.username,)


class TransportTarget(namedtuple(
        'TransportTarget',
        'host port use_ssl credential use_default_credentials')):
    """Host, port, security mode and credentials of one attempt.

    A `port` of 0 lets the SMTP client pick the protocol default.
    """
    __slots__ = ()

    def __new__(cls, host, port=0, use_ssl=False, credential=None,
                use_default_credentials=False):
        return super(TransportTarget, cls).__new__(
            cls, host, port, use_ssl, credential, use_default_credentials)


@implementer(IDefaultHostProvider)
class StaticDefaultHost(object):

    def __init__(self, value=None):
        self.value = value

    def __call__(self):
        return self.value


@implementer(IDefaultHostProvider)
class EnvironDefaultHost(object):
    """Reads the default host from an environment variable."""

    def __init__(self, name=DEFAULT_HOST_VARIABLE, environ=None):
        self.name = name
        self.environ = environ

    def __call__(self):
        environ = self.environ
        if environ is None:
            environ = os.environ
        return environ.get(self.name)


class TransportResolver(object):
    log = logging.getLogger(__name__)

    def __init__(self, default_host=None):
        if default_host is None:
            default_host = StaticDefaultHost()
        self.default_host = default_host

    def resolve(self, explicit_host=None, port=0, use_ssl=False,
                credential=None):
        """Compute the `TransportTarget` for the given parameters.

        The default host is read at most once, and only when no explicit
        host is given.  Raises `MissingHostError` when neither yields a
        host name.
        """
        host = explicit_host
        if not host:
            host = self.default_host()
            if host:
                self.log.debug("Using default SMTP server %s", host)
        if host is not None:
            host = str(host).strip()
        if not host:
            raise MissingHostError()

        if port is None:
            port = 0
        port = int(port)
        if port < 0:
            raise ValueError('Port must not be negative: %d' % port)

        use_ssl = bool(use_ssl)
        if credential is not None:
            if not isinstance(credential, Credential):
                credential = Credential(*credential)
            use_default_credentials = False
        elif not use_ssl:
            use_default_credentials = True
        else:
            use_default_credentials = False

        return TransportTarget(host, port, use_ssl, credential,
                               use_default_credentials)
