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
"""Character set selection and message serialization."""
import codecs
from email.charset import ALIASES
from email.charset import CHARSETS

from sendmessage.errors import InvalidEncodingError

_CANDIDATES = ('ascii', 'latin_1', 'utf_8')


def best_charset(text):
    """Find the most human-readable and/or conventional encoding for text.

    Returns a ``(charset, encoded)`` pair.
    """
    for charset in _CANDIDATES:
        try:
            return charset, text.encode(charset)
        except UnicodeError:
            pass
    # utf_8 encodes every string that has no lone surrogates
    raise InvalidEncodingError('utf_8', 'text cannot be encoded')


def lookup_charset(name):
    """Return the MIME name of the encoding called `name`.

    Accepts Python codec names and their aliases ('latin_1', 'utf8',
    'ascii').  Encodings that cannot carry ASCII text unchanged are
    refused, since they cannot be used for mail headers.
    """
    if isinstance(name, bytes):
        name = name.decode('ascii', 'replace')
    if not isinstance(name, str) or not name.strip():
        raise InvalidEncodingError(name, 'no encoding name given')
    key = name.strip().lower()
    charset = ALIASES.get(key, key)
    try:
        if charset not in CHARSETS:
            codec_name = codecs.lookup(charset).name
            charset = ALIASES.get(codec_name, codec_name)
        compatible = 'ascii'.encode(charset) == b'ascii'
    except LookupError:
        raise InvalidEncodingError(name, 'unknown encoding')
    except UnicodeError:
        compatible = False
    if not compatible:
        raise InvalidEncodingError(name, 'not an ASCII compatible encoding')
    return charset


def check_text(text, charset):
    """Raise `InvalidEncodingError` unless `text` is representable in
    `charset`."""
    try:
        text.encode(charset)
    except UnicodeError as e:
        raise InvalidEncodingError(charset, str(e))


def choose_charset(encoding, *texts):
    """Resolve the charset shared by the subject and the body.

    With no explicit `encoding`, the best charset for all `texts` is used.
    """
    if encoding is None:
        charset, _ = best_charset(''.join(texts))
        return lookup_charset(charset)
    charset = lookup_charset(encoding)
    for text in texts:
        check_text(text, charset)
    return charset


def encode_message(message):
    """Serialize a `Message` to the bytes handed to the SMTP session."""
    return message.as_bytes()
