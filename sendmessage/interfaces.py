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
"""`sendmessage` interfaces

Sending a message works as follows:

- A caller (the `sendmessage` console script, or application code)
  creates a mail command (`IMailCommand`) from the declared fields of the
  message: sender, recipients per role, subject, body, encoding,
  priority, delivery notification and transport options.

- `begin` assembles the outgoing message, then resolves the transport
  target, falling back to the process wide default host
  (`IDefaultHostProvider`) when no host is given.  A bad sender
  address, an empty subject or a missing host raises immediately; a bad
  recipient address is recorded and skipped.

- `process` may be called any number of times with attachment paths.
  Paths that cannot be resolved are recorded and skipped.

- `end` performs exactly one delivery attempt through a mailer
  (`IMailer`) and returns an `IDeliveryOutcome`.  Recipients refused by
  the server and transport failures are recorded, never raised.
  Attachment files and the SMTP session are released on every path.

- A transactional delivery can defer `end` to the commit of the current
  transaction instead.
"""

from zope.interface import Attribute, Interface


class IMailer(Interface):
    """Handles synchronous mail delivery over one session."""

    def send(fromaddr, toaddrs, message, notify=None):
        """Send an email message.

        `fromaddr` is the envelope sender address (unicode string),

        `toaddrs` is a sequence of recipient addresses (unicode strings).

        `message` is a `Message` object from the stdlib `email.message`
        module.

        `notify` is an optional DSN ``NOTIFY=`` value requested for every
        recipient.

        Returns a mapping of the recipients refused by the server to
        their ``(code, response)`` pair; empty when all were accepted.
        The session is closed before returning or raising.
        """


class ISMTPMailer(IMailer):
    """A mailer that delivers mail to a relay host via SMTP."""

    hostname = Attribute("Name of the SMTP server.")
    port = Attribute("Port of the SMTP service, 0 for the default.")
    username = Attribute("Username used for SMTP authentication.")
    password = Attribute("Password used for SMTP authentication.")
    use_ssl = Attribute("Refuse to send over an unencrypted session.")
    use_default_credentials = Attribute(
        "Look up credentials for the host in the user's netrc file.")


class IDefaultHostProvider(Interface):
    """Read-only access to the process wide default SMTP host."""

    def __call__():
        """Return the default host name, or None when unset."""


class IDeliveryOutcome(Interface):
    """The classified result of one delivery attempt."""

    succeeded = Attribute("True when every recipient was accepted.")

    status = Attribute("'Success', 'PartialFailure', 'TransportFailure' "
                       "or 'Fatal'.")


class IMailCommand(Interface):
    """One invocation of the send pipeline."""

    diagnostics = Attribute(
        "List of non-terminating `MailError` instances, in the order "
        "they were detected.")

    def begin():
        """Assemble the message and resolve the transport target.

        Raises a `FatalMailError` when no message can be sent.
        """

    def process(attachments):
        """Bind a sequence of attachment paths to the message."""

    def end():
        """Perform the single delivery attempt and return its outcome."""
