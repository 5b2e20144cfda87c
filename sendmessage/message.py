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
"""The outgoing message and its assembly from the declared fields."""
import enum
import logging
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from email.utils import make_msgid

from sendmessage.addresses import AddressRole
from sendmessage.addresses import AddressSetBuilder
from sendmessage.encoding import choose_charset
from sendmessage.errors import MissingSubjectError


class Priority(enum.Enum):
    """Priority as it is declared by the caller."""
    LOW = 'Low'
    NORMAL = 'Normal'
    HIGH = 'High'

    @classmethod
    def coerce(cls, value):
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).lower() == member.value.lower():
                return member
        raise ValueError('Unknown priority %r' % (value,))


class MessagePriority(enum.Enum):
    """Priority as it is carried by the message headers."""
    NON_URGENT = 'non-urgent'
    NORMAL = 'normal'
    URGENT = 'urgent'


PRIORITY_MAP = {
    Priority.LOW: MessagePriority.NON_URGENT,
    Priority.NORMAL: MessagePriority.NORMAL,
    Priority.HIGH: MessagePriority.URGENT,
}

# (X-Priority, Importance) for the non normal priorities
_PRIORITY_HEADERS = {
    MessagePriority.NON_URGENT: ('5 (Lowest)', 'low'),
    MessagePriority.URGENT: ('1 (Highest)', 'high'),
}


def map_priority(priority):
    try:
        return PRIORITY_MAP[priority]
    except KeyError:
        raise ValueError('Unknown priority %r' % (priority,))


class DeliveryNotification(enum.Flag):
    NONE = 0
    ON_SUCCESS = 1
    ON_FAILURE = 2
    DELAY = 4
    NEVER = 0x08000000

    @classmethod
    def coerce(cls, value):
        """Accept a member, or a comma separated list of member names
        such as ``'OnSuccess, OnFailure'``."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        names = dict((name.replace('_', '').lower(), member)
                     for name, member in cls.__members__.items())
        result = cls.NONE
        for name in str(value).split(','):
            key = name.strip().replace('_', '').replace('-', '').lower()
            if not key:
                continue
            try:
                result |= names[key]
            except KeyError:
                raise ValueError(
                    'Unknown delivery notification %r' % (name.strip(),))
        return result

    def notify_option(self):
        """The DSN ``NOTIFY=`` value, or None when nothing is requested."""
        if self & DeliveryNotification.NEVER:
            return 'NEVER'
        keywords = []
        if self & DeliveryNotification.ON_SUCCESS:
            keywords.append('SUCCESS')
        if self & DeliveryNotification.ON_FAILURE:
            keywords.append('FAILURE')
        if self & DeliveryNotification.DELAY:
            keywords.append('DELAY')
        if not keywords:
            return None
        return ','.join(keywords)


class OutgoingMessage(object):
    """A message under construction.

    Header and body fields are filled by `MessageAssembler`, the
    attachment list by `AttachmentResolver`; the delivery executor only
    reads it and releases the attachments when it is done.
    """

    sender = None
    subject = None
    body = None
    is_html = False
    charset = 'us-ascii'
    priority = MessagePriority.NORMAL
    notification = DeliveryNotification.NONE

    def __init__(self):
        self.to = []
        self.cc = []
        self.bcc = []
        self.reply_to = []
        self.attachments = []
        self._body_set = False

    def addresses(self, role):
        if role is AddressRole.SENDER:
            return [self.sender] if self.sender is not None else []
        return {
            AddressRole.TO: self.to,
            AddressRole.CC: self.cc,
            AddressRole.BCC: self.bcc,
            AddressRole.REPLY_TO: self.reply_to,
        }[role]

    def set_body(self, text, is_html=False):
        if self._body_set:
            raise ValueError('The message body has already been set')
        self.body = text if text is not None else ''
        self.is_html = bool(is_html)
        self._body_set = True

    def recipients(self):
        return list(self.to) + list(self.cc) + list(self.bcc)

    def notify_option(self):
        return self.notification.notify_option()

    def validate(self):
        if self.sender is None:
            raise ValueError('A from address must be specified')
        if not self.to:
            raise ValueError('A recipient must be specified')
        if not self.subject:
            raise ValueError('A subject must be specified')
        if not self._body_set:
            raise ValueError('The message body has not been set')

    def as_mime(self):
        """Render the message; attachment files are opened here."""
        body = MIMEText(self.body, 'html' if self.is_html else 'plain',
                        self.charset)
        if self.attachments:
            mime = MIMEMultipart('mixed')
            mime.attach(body)
            for binding in self.attachments:
                mime.attach(binding.as_mime())
        else:
            mime = body

        mime['From'] = str(self.sender)
        for role in (AddressRole.TO, AddressRole.CC, AddressRole.REPLY_TO):
            mailboxes = self.addresses(role)
            if mailboxes:
                mime[role.header] = ', '.join(str(m) for m in mailboxes)
        mime['Subject'] = Header(self.subject, self.charset)
        mime['Date'] = formatdate(localtime=True)
        mime['Message-Id'] = make_msgid('sendmessage')
        if self.priority is not MessagePriority.NORMAL:
            x_priority, importance = _PRIORITY_HEADERS[self.priority]
            mime['Priority'] = self.priority.value
            mime['X-Priority'] = x_priority
            mime['Importance'] = importance
        return mime

    def release_attachments(self):
        for binding in self.attachments:
            binding.release()


class MessageAssembler(object):
    log = logging.getLogger(__name__)

    def __init__(self, diagnostics=None):
        if diagnostics is None:
            diagnostics = []
        self.diagnostics = diagnostics

    def assemble(self, sender, to, subject, body=None, cc=None, bcc=None,
                 reply_to=None, body_as_html=False, encoding=None,
                 priority=Priority.NORMAL,
                 delivery_notification=DeliveryNotification.NONE):
        """Build an `OutgoingMessage`.

        Raises `SenderAddressError` for a bad sender, `MissingSubjectError`
        for an empty subject and `InvalidEncodingError` when the subject or
        body cannot be written in `encoding`.  Bad recipient addresses go
        to `diagnostics`.
        """
        builder = AddressSetBuilder(self.diagnostics)
        message = OutgoingMessage()
        message.sender = builder.add_sender(sender)
        if not subject:
            raise MissingSubjectError()
        message.to.extend(builder.add_role(AddressRole.TO, to))
        message.bcc.extend(builder.add_role(AddressRole.BCC, bcc))
        message.cc.extend(builder.add_role(AddressRole.CC, cc))
        message.reply_to.extend(
            builder.add_role(AddressRole.REPLY_TO, reply_to))

        message.notification = DeliveryNotification.coerce(
            delivery_notification)
        message.subject = subject
        message.set_body(body, body_as_html)
        message.charset = choose_charset(
            encoding, subject or '', message.body)
        message.priority = map_priority(Priority.coerce(priority))
        return message
