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
"""The send pipeline: begin, process any number of times, end once."""
import logging

from zope.interface import implementer

from sendmessage.attachments import AttachmentResolver
from sendmessage.delivery import DeliveryExecutor
from sendmessage.delivery import Fatal
from sendmessage.errors import FatalMailError
from sendmessage.interfaces import IMailCommand
from sendmessage.message import DeliveryNotification
from sendmessage.message import MessageAssembler
from sendmessage.message import Priority
from sendmessage.transport import TransportResolver

log = logging.getLogger(__name__)


@implementer(IMailCommand)
class SendMailMessage(object):
    """Sends one message built from declared fields.

    `default_host` is an `IDefaultHostProvider` consulted when
    `smtp_server` is not given; `mailer_factory` turns the resolved
    `TransportTarget` into an `IMailer`.
    """

    message = None
    target = None
    outcome = None

    def __init__(self, sender, to, subject, body=None, cc=None, bcc=None,
                 reply_to=None, body_as_html=False, encoding=None,
                 priority=Priority.NORMAL,
                 delivery_notification=DeliveryNotification.NONE,
                 smtp_server=None, port=0, use_ssl=False, credential=None,
                 default_host=None, base_dir=None, mailer_factory=None):
        self.sender = sender
        self.to = to
        self.subject = subject
        self.body = body
        self.cc = cc
        self.bcc = bcc
        self.reply_to = reply_to
        self.body_as_html = body_as_html
        self.encoding = encoding
        self.priority = priority
        self.delivery_notification = delivery_notification
        self.smtp_server = smtp_server
        self.port = port
        self.use_ssl = use_ssl
        self.credential = credential
        self.default_host = default_host
        self.base_dir = base_dir
        self.mailer_factory = mailer_factory
        self.diagnostics = []

    def begin(self):
        if self.message is not None:
            raise ValueError('The mail command has already been begun')
        message = MessageAssembler(self.diagnostics).assemble(
            self.sender, self.to, self.subject, self.body,
            cc=self.cc, bcc=self.bcc, reply_to=self.reply_to,
            body_as_html=self.body_as_html, encoding=self.encoding,
            priority=self.priority,
            delivery_notification=self.delivery_notification)
        target = TransportResolver(self.default_host).resolve(
            self.smtp_server, self.port, self.use_ssl, self.credential)
        self.message = message
        self.target = target
        return message

    def process(self, attachments):
        if self.message is None:
            raise ValueError('The mail command has not been begun')
        if self.outcome is not None:
            raise ValueError('The message has already been sent')
        resolver = AttachmentResolver(self.diagnostics, self.base_dir)
        return resolver.bind(self.message, attachments)

    def end(self):
        if self.message is None:
            raise ValueError('The mail command has not been begun')
        if self.outcome is not None:
            raise ValueError('The message has already been sent')
        executor = DeliveryExecutor(self.mailer_factory, self.diagnostics)
        self.outcome = executor.send(self.target, self.message)
        return self.outcome

    def abort(self):
        """Give up before sending; releases what `process` bound."""
        if self.message is not None:
            self.message.release_attachments()

    def run(self, attachments=None):
        self.begin()
        if attachments:
            self.process(attachments)
        return self.end()


def send_mail_message(attachments=None, **params):
    """Run the whole pipeline once.

    Returns ``(outcome, diagnostics)``.  Fatal setup errors are returned
    as a `Fatal` outcome instead of being raised.
    """
    command = SendMailMessage(**params)
    try:
        command.begin()
    except FatalMailError as e:
        log.error("%s", e)
        return Fatal(e), command.diagnostics
    if attachments:
        command.process(attachments)
    return command.end(), command.diagnostics
