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
"""Errors reported while building and sending a message.

Two families exist.  `FatalMailError` subclasses are raised: they mean
that no message can be sent at all and nothing has been opened yet.
Every other `MailError` is *recorded*: the component that detects it
appends an instance to the diagnostics list it was given and carries on
with the next item.
"""


class MailError(Exception):
    """Base class for all errors reported by sendmessage."""

    category = 'InvalidOperation'
    terminating = False

    def __init__(self, message, target=None):
        Exception.__init__(self, message)
        self.target = target

    @property
    def message(self):
        return self.args[0]


class FatalMailError(MailError):
    """Aborts the invocation before any send attempt."""

    terminating = True


class SenderAddressError(FatalMailError):

    category = 'InvalidType'

    def __init__(self, raw, reason=None):
        message = 'Invalid sender address %r' % (raw,)
        if reason:
            message = '%s: %s' % (message, reason)
        FatalMailError.__init__(self, message, raw)
        self.reason = reason


class MissingHostError(FatalMailError):

    category = 'InvalidArgument'

    def __init__(self, message=None):
        if message is None:
            message = ('The SMTP server was not specified and no default '
                       'server is configured')
        FatalMailError.__init__(self, message)


class MissingSubjectError(FatalMailError):

    category = 'InvalidArgument'

    def __init__(self, message=None):
        if message is None:
            message = 'A subject must be specified'
        FatalMailError.__init__(self, message)


class InvalidEncodingError(FatalMailError):

    category = 'InvalidArgument'

    def __init__(self, encoding, reason=None):
        message = 'Unusable character encoding %r' % (encoding,)
        if reason:
            message = '%s: %s' % (message, reason)
        FatalMailError.__init__(self, message, encoding)
        self.encoding = encoding


class AddressFormatError(MailError):

    category = 'InvalidType'

    def __init__(self, raw, role=None, reason=None):
        if role is None:
            message = 'Invalid mailbox address %r' % (raw,)
        else:
            message = 'Invalid %s address %r' % (role.label, raw)
        if reason:
            message = '%s: %s' % (message, reason)
        MailError.__init__(self, message, raw)
        self.role = role
        self.reason = reason


class AttachmentNotFoundError(MailError):

    category = 'ObjectNotFound'

    def __init__(self, path):
        MailError.__init__(
            self, 'Cannot find attachment %r because it does not exist'
            % (path,), path)
        self.path = path


class AttachmentReadError(MailError):

    category = 'ReadError'

    def __init__(self, path, reason):
        MailError.__init__(
            self, 'Cannot read attachment %r: %s' % (path, reason), path)
        self.path = path
        self.reason = reason


class RecipientRejectedError(MailError):

    def __init__(self, address, code, reason):
        if isinstance(reason, bytes):
            reason = reason.decode('utf-8', 'replace')
        MailError.__init__(
            self, 'Mailbox %s was rejected by the server (%s %s)'
            % (address, code, reason), address)
        self.address = address
        self.code = code
        self.reason = reason


class TransportError(MailError):
    """The single delivery attempt failed as a whole.

    `kind` names the failure family ('SmtpError', 'AuthenticationError',
    'InvalidOperation').  `cause` keeps the exception that was caught;
    when that exception wrapped another one, the message is the inner
    one's.
    """

    def __init__(self, kind, message, host=None, cause=None):
        MailError.__init__(self, message, host)
        self.kind = kind
        self.cause = cause
