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
"""
Mail delivery

This module classifies the single delivery attempt of an outgoing message
and provides a transactional delivery that postpones the attempt until
the current transaction commits.
"""
import logging
from smtplib import SMTPAuthenticationError
from smtplib import SMTPException
from smtplib import SMTPRecipientsRefused
from smtplib import SMTPResponseException

from zope.interface import implementer
import transaction
from transaction.interfaces import IDataManager

from sendmessage.errors import RecipientRejectedError
from sendmessage.errors import TransportError
from sendmessage.interfaces import IDeliveryOutcome
from sendmessage.mailer import SMTPMailer


@implementer(IDeliveryOutcome)
class Success(object):
    status = 'Success'
    succeeded = True

    def __repr__(self):
        return '<Success>'


@implementer(IDeliveryOutcome)
class PartialFailure(object):
    """The session worked but the server refused some recipients.

    `rejected` maps each refused address to its ``(code, reason)``.
    """
    status = 'PartialFailure'
    succeeded = False

    def __init__(self, rejected):
        self.rejected = dict(rejected)

    def __repr__(self):
        return '<PartialFailure %s>' % ', '.join(sorted(self.rejected))


@implementer(IDeliveryOutcome)
class TransportFailure(object):
    status = 'TransportFailure'
    succeeded = False

    def __init__(self, kind, message, cause=None):
        self.kind = kind
        self.message = message
        self.cause = cause

    def __repr__(self):
        return '<TransportFailure %s: %s>' % (self.kind, self.message)


@implementer(IDeliveryOutcome)
class Fatal(object):
    """Setup failed; nothing was sent."""
    status = 'Fatal'
    succeeded = False

    def __init__(self, error):
        self.error = error

    @property
    def kind(self):
        return type(self.error).__name__

    @property
    def message(self):
        return str(self.error)

    def __repr__(self):
        return '<Fatal %s: %s>' % (self.kind, self.message)


def failure_message(exc):
    """The message reported for a failed session.

    When `exc` wraps another exception, the inner message wins.
    """
    inner = exc.__cause__
    if inner is None and not exc.__suppress_context__:
        inner = exc.__context__
    if inner is not None:
        return str(inner)
    if isinstance(exc, SMTPResponseException):
        error = exc.smtp_error
        if isinstance(error, bytes):
            error = error.decode('utf-8', 'replace')
        return '%s %s' % (exc.smtp_code, error)
    return str(exc)


class DeliveryExecutor(object):
    """Performs one delivery attempt and classifies its outcome.

    Non-terminating errors are appended to `diagnostics`.  The attachments
    of the message are released before `send` returns, whatever happened.
    """
    log = logging.getLogger(__name__)

    def __init__(self, mailer_factory=None, diagnostics=None):
        if mailer_factory is None:
            mailer_factory = SMTPMailer.from_target
        if diagnostics is None:
            diagnostics = []
        self.mailer_factory = mailer_factory
        self.diagnostics = diagnostics

    def send(self, target, message):
        try:
            return self._deliver(target, message)
        finally:
            message.release_attachments()

    def _deliver(self, target, message):
        try:
            message.validate()
        except ValueError as e:
            return self._failure(target, 'InvalidOperation', str(e), e)

        fromaddr = message.sender.address
        toaddrs = [mailbox.address for mailbox in message.recipients()]
        try:
            mime = message.as_mime()
        except OSError as e:
            return self._failure(target, 'ReadError', str(e), e)

        try:
            mailer = self.mailer_factory(target)
            refused = mailer.send(fromaddr, toaddrs, mime,
                                  notify=message.notify_option())
        except SMTPRecipientsRefused as e:
            refused = e.recipients
        except SMTPAuthenticationError as e:
            return self._failure(
                target, 'AuthenticationError', failure_message(e), e)
        except (SMTPException, OSError) as e:
            return self._failure(target, 'SmtpError', failure_message(e), e)
        except RuntimeError as e:
            return self._failure(target, 'InvalidOperation', str(e), e)

        if refused:
            for address, (code, reason) in refused.items():
                error = RecipientRejectedError(address, code, reason)
                self.log.error("%s", error)
                self.diagnostics.append(error)
            return PartialFailure(refused)

        self.log.info("Mail from %s to %s sent.", fromaddr,
                      ", ".join(toaddrs))
        return Success()

    def _failure(self, target, kind, text, cause):
        error = TransportError(kind, text, target.host, cause)
        self.log.error("Error while sending mail through %s: %s",
                       target.host, text)
        self.diagnostics.append(error)
        return TransportFailure(kind, text, cause)


@implementer(IDataManager)
class CommandDataManager(object):
    """Runs the delivery of a begun mail command at transaction commit.

    Aborting the transaction releases the attachments without sending.
    """

    outcome = None

    def __init__(self, command, transaction_manager=None):
        self.command = command
        if transaction_manager is None:
            transaction_manager = transaction.manager
        self.transaction_manager = transaction_manager
        self.transaction = None
        self.tpc_phase = 0

    def join_transaction(self, trans=None):
        if trans is None:
            trans = self.transaction_manager.get()
        if self.transaction is not None and self.transaction is not trans:
            raise ValueError('Already joined to another transaction')
        if self.transaction is None:
            trans.join(self)
            self.transaction = trans

    def _check(self, trans):
        if self.transaction is None:
            raise ValueError("Not in a transaction")
        if self.transaction is not trans:
            raise ValueError("In a different transaction")

    def commit(self, trans):
        self._check(trans)

    def abort(self, trans):
        self._check(trans)
        if self.tpc_phase != 0:
            raise ValueError("TPC in progress")
        self.command.abort()

    def sortKey(self):
        return str(id(self))

    def tpc_begin(self, trans, subtransaction=False):
        self._check(trans)
        if subtransaction:
            raise ValueError("Subtransactions not supported")
        self.tpc_phase = 1

    def tpc_vote(self, trans):
        self._check(trans)
        if self.tpc_phase != 1:
            raise ValueError("TPC phase error: %d" % self.tpc_phase)
        self.tpc_phase = 2

    def tpc_finish(self, trans):
        self._check(trans)
        if self.tpc_phase != 2:
            raise ValueError("TPC phase error: %d" % self.tpc_phase)
        self.outcome = self.command.end()
        self.tpc_phase = 0

    def tpc_abort(self, trans):
        self._check(trans)
        self.tpc_phase = 0
        self.command.abort()


class TransactionalMailDelivery(object):
    """Defers `end` of mail commands to the commit of the transaction."""

    def __init__(self, transaction_manager=None):
        if transaction_manager is None:
            transaction_manager = transaction.manager
        self.transaction_manager = transaction_manager

    def send(self, command):
        """Join `command` to the current transaction.

        `command.begin` must already have been called.  Returns the data
        manager, whose `outcome` is set once the transaction commits.
        """
        if command.message is None:
            raise ValueError('The mail command has not been begun')
        manager = CommandDataManager(command, self.transaction_manager)
        manager.join_transaction()
        return manager
