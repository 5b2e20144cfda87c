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
import logging
import netrc
from email.message import Message
from smtplib import SMTP
from smtplib import SMTPException
from smtplib import SMTP_SSL_PORT

try:
    import ssl
except ImportError:  # pragma NO COVER
    HAVE_SSL = False
    SMTP_SSL = None
else:  # pragma NO COVER
    HAVE_SSL = True
    del ssl
    from smtplib import SMTP_SSL

from zope.interface import implementer
from sendmessage.encoding import encode_message
from sendmessage.interfaces import ISMTPMailer


@implementer(ISMTPMailer)
class SMTPMailer(object):
    log = logging.getLogger(__name__)

    smtp = SMTP  # allow replacement for testing.
    smtp_ssl = SMTP_SSL  # allow replacement for testing.
    netrc_file = None  # ~/.netrc

    def __init__(self, hostname='localhost', port=0,
                 username=None, password=None, use_ssl=False,
                 use_default_credentials=False, debug_smtp=False,
                 timeout=10):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.use_default_credentials = use_default_credentials
        self.debug_smtp = debug_smtp
        self.timeout = timeout

    @classmethod
    def from_target(cls, target, **kw):
        username = password = None
        if target.credential is not None:
            username, password = target.credential
        return cls(target.host, target.port, username, password,
                   target.use_ssl, target.use_default_credentials, **kw)

    @property
    def implicit_tls(self):
        return bool(self.use_ssl) and self.port == SMTP_SSL_PORT

    def smtp_factory(self):
        if self.implicit_tls:
            if self.smtp_ssl is None:
                raise RuntimeError('No SSL available, cannot send via SSL')
            connection = self.smtp_ssl(self.hostname, self.port,
                                       timeout=self.timeout)
        else:
            connection = self.smtp(self.hostname, self.port,
                                   timeout=self.timeout)
        connection.set_debuglevel(self.debug_smtp)
        return connection

    def credentials(self):
        if self.username is not None and self.password is not None:
            return self.username, self.password
        if not self.use_default_credentials:
            return None
        try:
            authenticators = netrc.netrc(self.netrc_file).authenticators(
                self.hostname)
        except (OSError, netrc.NetrcParseError) as e:
            self.log.debug("No default credentials for %s: %s",
                           self.hostname, e)
            return None
        if authenticators is None:
            return None
        login, account, password = authenticators
        return login, password

    def send(self, fromaddr, toaddrs, message, notify=None):
        if not isinstance(message, Message):
            raise ValueError(
               'Message must be instance of email.message.Message')
        message = encode_message(message)

        connection = self.smtp_factory()
        try:
            return self._send(connection, fromaddr, toaddrs, message, notify)
        finally:
            self._close(connection)

    def _send(self, connection, fromaddr, toaddrs, message, notify):
        # send EHLO
        code, response = connection.ehlo()
        if code < 200 or code >= 300:
            code, response = connection.helo()
            if code < 200 or code >= 300:
                raise RuntimeError(
                        'Error sending HELO to the SMTP server '
                        '(code=%s, response=%s)' % (code, response))

        # encryption support
        if not self.implicit_tls:
            have_tls = connection.has_extn('starttls')
            if not have_tls and self.use_ssl:
                raise RuntimeError('TLS is not available but TLS is required')
            if have_tls and HAVE_SSL:
                connection.starttls()
                connection.ehlo()

        credentials = self.credentials()
        if connection.does_esmtp:
            if credentials is not None:
                connection.login(*credentials)
        elif self.username:
            raise RuntimeError(
                    'Mailhost does not support ESMTP but a username '
                    'is configured')

        rcpt_options = ()
        if notify:
            if connection.has_extn('dsn'):
                rcpt_options = ('NOTIFY=%s' % notify,)
            else:
                self.log.warning(
                    "%s does not support delivery status notifications",
                    self.hostname)

        refused = connection.sendmail(fromaddr, toaddrs, message,
                                      rcpt_options=rcpt_options)
        return refused or {}

    def _close(self, connection):
        try:
            connection.quit()
        except (SMTPException, OSError):
            # something weird happened while quiting
            connection.close()
