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
"""Mailbox addresses and the per-role address set builder."""
import enum
import logging
import re
from collections import namedtuple
from email.utils import formataddr
from email.utils import getaddresses

from sendmessage.errors import AddressFormatError
from sendmessage.errors import SenderAddressError

# MAIL FROM and RCPT TO are sent as ASCII
_ATEXT = "[A-Za-z0-9!#$%&'*+/=?^_`{|}~\\-]"
_DOT_ATOM = '%s+(?:\\.%s+)*' % (_ATEXT, _ATEXT)
_QUOTED_STRING = r'"(?:[\x20\x21\x23-\x5b\x5d-\x7e]|\\[\x20-\x7e])*"'
_DOMAIN_LITERAL = r'\[[\x21-\x5a\x5e-\x7e]*\]'

_LOCAL_PART = re.compile('^(?:%s|%s)$' % (_DOT_ATOM, _QUOTED_STRING))
_DOMAIN = re.compile('^(?:%s|%s)$' % (_DOT_ATOM, _DOMAIN_LITERAL))


class AddressRole(enum.Enum):
    SENDER = 'From'
    TO = 'To'
    CC = 'Cc'
    BCC = 'Bcc'
    REPLY_TO = 'Reply-To'

    @property
    def header(self):
        return self.value

    @property
    def label(self):
        if self is AddressRole.SENDER:
            return 'sender'
        return self.value.lower()


class MailboxAddress(namedtuple('MailboxAddress', 'address display_name')):
    """A validated ``(address, display_name)`` pair.

    Construction fails with `AddressFormatError` unless `address` is a
    single ``local-part@domain`` mailbox.

    >>> str(MailboxAddress('a@example.com'))
    'a@example.com'
    >>> str(MailboxAddress.parse('Chris Rossi <chrisr@example.com>'))
    'Chris Rossi <chrisr@example.com>'
    """
    __slots__ = ()

    def __new__(cls, address, display_name=None):
        reason = _check_address(address)
        if reason is not None:
            raise AddressFormatError(address, reason=reason)
        return super(MailboxAddress, cls).__new__(
            cls, address, display_name or None)

    @classmethod
    def parse(cls, raw):
        """Parse ``"a@example.com"`` or ``"Display Name <a@example.com>"``.
        """
        if not isinstance(raw, str) or not raw.strip():
            raise AddressFormatError(raw, reason='empty address')
        pairs = getaddresses([raw])
        if len(pairs) != 1:
            raise AddressFormatError(
                raw, reason='expected exactly one mailbox')
        display_name, address = pairs[0]
        # getaddresses drops what it cannot parse
        if not address or address not in raw:
            raise AddressFormatError(raw, reason='malformed mailbox')
        return cls(address, display_name)

    def __str__(self):
        return formataddr((self.display_name, self.address))


def _check_address(address):
    if not isinstance(address, str) or not address:
        return 'empty address'
    local, sep, domain = address.rpartition('@')
    if not sep:
        return "missing '@'"
    if not _LOCAL_PART.match(local):
        return 'invalid local part %r' % (local,)
    if not _DOMAIN.match(domain):
        return 'invalid domain %r' % (domain,)
    return None


class AddressSetBuilder(object):
    """Turns the raw address strings of each role into mailboxes.

    Invalid recipient addresses are appended to `diagnostics` and dropped;
    an invalid sender raises `SenderAddressError`.
    """
    log = logging.getLogger(__name__)

    def __init__(self, diagnostics=None):
        if diagnostics is None:
            diagnostics = []
        self.diagnostics = diagnostics

    def add_sender(self, raw):
        try:
            return MailboxAddress.parse(raw)
        except AddressFormatError as e:
            raise SenderAddressError(raw, e.reason)

    def add_role(self, role, raw_addresses):
        if isinstance(raw_addresses, str):
            raw_addresses = [raw_addresses]

        if role is AddressRole.SENDER:
            raw_addresses = list(raw_addresses or ())
            if len(raw_addresses) != 1:
                raise SenderAddressError(
                    raw_addresses, 'exactly one sender is required')
            return (self.add_sender(raw_addresses[0]),)

        mailboxes = []
        for raw in raw_addresses or ():
            try:
                mailboxes.append(MailboxAddress.parse(raw))
            except AddressFormatError as e:
                error = AddressFormatError(raw, role, e.reason)
                self.log.error("%s", error)
                self.diagnostics.append(error)
        return tuple(mailboxes)
