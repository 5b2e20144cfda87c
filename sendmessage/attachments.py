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
"""Attachment resolution and the file handles bound into a message."""
import logging
import mimetypes
import os
from email import encoders
from email.mime.base import MIMEBase

from sendmessage.errors import AttachmentNotFoundError
from sendmessage.errors import AttachmentReadError


class AttachmentBinding(object):
    """A resolved file bound into an outgoing message.

    The file is opened on first use, normally when the message is
    rendered at send time, and stays open until `release` is called.
    """

    def __init__(self, path, content_type=None):
        self.path = path
        self.filename = os.path.basename(path)
        if content_type is None:
            content_type, encoding = mimetypes.guess_type(path)
            if content_type is None or encoding is not None:
                content_type = 'application/octet-stream'
        self.content_type = content_type
        self.released = False
        self._fp = None

    def __repr__(self):
        return '<AttachmentBinding %s (%s)>' % (self.path, self.content_type)

    @property
    def closed(self):
        return self._fp is None or self._fp.closed

    def open(self):
        if self.released:
            raise ValueError('Attachment %s has been released' % self.path)
        if self._fp is None:
            self._fp = open(self.path, 'rb')
        return self._fp

    def read(self):
        fp = self.open()
        fp.seek(0)
        return fp.read()

    def as_mime(self):
        maintype, subtype = self.content_type.split('/', 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(self.read())
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment',
                        filename=self.filename)
        return part

    def release(self):
        if self._fp is not None:
            self._fp.close()
        self.released = True


class AttachmentResolver(object):
    """Resolves attachment paths and binds them to a message.

    Paths that do not name a readable file are reported to `diagnostics`
    and skipped; the others are appended in order.
    """
    log = logging.getLogger(__name__)

    def __init__(self, diagnostics=None, base_dir=None):
        if diagnostics is None:
            diagnostics = []
        self.diagnostics = diagnostics
        self.base_dir = base_dir

    def resolve(self, raw_path):
        path = os.path.expanduser(os.fspath(raw_path))
        if not os.path.isabs(path):
            base_dir = self.base_dir
            if base_dir is None:
                base_dir = os.getcwd()
            path = os.path.join(base_dir, path)
        path = os.path.normpath(path)

        if not os.path.exists(path):
            raise AttachmentNotFoundError(raw_path)
        if not os.path.isfile(path):
            raise AttachmentReadError(raw_path, 'not a regular file')
        if not os.access(path, os.R_OK):
            raise AttachmentReadError(raw_path, 'permission denied')
        return path

    def bind(self, message, raw_paths):
        if isinstance(raw_paths, (str, os.PathLike)):
            raw_paths = [raw_paths]
        bound = []
        for raw_path in raw_paths or ():
            try:
                path = self.resolve(raw_path)
            except (AttachmentNotFoundError, AttachmentReadError) as error:
                self.log.error("%s", error)
                self.diagnostics.append(error)
                continue
            binding = AttachmentBinding(path)
            message.attachments.append(binding)
            bound.append(binding)
        return bound
