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
import os
import shutil
import sys
import tempfile
from io import StringIO
from unittest import TestCase

from sendmessage.console import ConsoleApp
from sendmessage.tests.test_delivery import MailerFactoryStub

REQUIRED = "--from me@example.com --to you@example.com --subject Hello"


class TestConsoleApp(TestCase):
    def setUp(self):
        self.dir = tempfile.mkdtemp()
        self.attachment = os.path.join(self.dir, "report.txt")
        with open(self.attachment, "w") as f:
            f.write("report")
        self.factory = MailerFactoryStub()

        self.save_stderr = sys.stderr
        sys.stderr = self.stderr = StringIO()
        self.save_server = os.environ.pop("SMTP_SERVER", None)

    def tearDown(self):
        sys.stderr = self.save_stderr
        if self.save_server is not None:
            os.environ["SMTP_SERVER"] = self.save_server
        else:
            os.environ.pop("SMTP_SERVER", None)
        shutil.rmtree(self.dir)

    def _captureLoggedErrors(self, cmdline, stdin=None):
        from sendmessage import console
        logged = []
        with _Monkey(console, _log_error=logged.append):
            app = ConsoleApp(cmdline.split(), stdin)
        return app, logged

    def _makeApp(self, cmdline, stdin=None):
        app = ConsoleApp(cmdline.split(), stdin)
        app.mailer_factory = self.factory
        return app

    def test_args_simple_ok(self):
        # Simplest case that works
        cmdline = "sendmessage %s" % REQUIRED
        app = ConsoleApp(cmdline.split())
        self.assertEqual("sendmessage", app.script_name)
        self.assertFalse(app._error)
        self.assertEqual("me@example.com", app.sender)
        self.assertEqual(["you@example.com"], app.to)
        self.assertEqual("Hello", app.subject)
        self.assertEqual(None, app.body)
        self.assertEqual([], app.cc)
        self.assertEqual([], app.bcc)
        self.assertEqual([], app.reply_to)
        self.assertEqual([], app.attachments)
        self.assertEqual(None, app.smtp_server)
        self.assertEqual(0, app.port)
        self.assertEqual(None, app.username)
        self.assertEqual(None, app.password)
        self.assertFalse(app.use_ssl)
        self.assertFalse(app.body_as_html)
        self.assertFalse(app.debug_smtp)

    def test_args_simple_error(self):
        # Simplest case that doesn't work
        cmdline = "sendmessage"
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertEqual("sendmessage", app.script_name)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)
        self.assertTrue(logged[0].startswith("sendmessage [OPTIONS]"))
        self.assertEqual(app.main(), 1)

    def test_args_full_monty(self):
        from sendmessage.message import DeliveryNotification
        from sendmessage.message import Priority
        # Use (almost) all of the options
        cmdline = """sendmessage %s --to him@example.com
                        --cc cc@example.com --bcc bcc@example.com
                        --reply-to back@example.com --body Hi
                        --body-as-html --encoding utf-8 --priority high
                        --delivery-notification OnSuccess,OnFailure
                        --smtp-server foo --port 587 --use-ssl
                        --username chris --password rossi --debug-smtp
                        %s""" % (REQUIRED, self.attachment)
        app = ConsoleApp(cmdline.split())
        self.assertFalse(app._error)
        self.assertEqual(["you@example.com", "him@example.com"], app.to)
        self.assertEqual(["cc@example.com"], app.cc)
        self.assertEqual(["bcc@example.com"], app.bcc)
        self.assertEqual(["back@example.com"], app.reply_to)
        self.assertEqual("Hi", app.body)
        self.assertTrue(app.body_as_html)
        self.assertEqual("utf-8", app.encoding)
        self.assertEqual(Priority.HIGH, app.priority)
        self.assertEqual(DeliveryNotification.ON_SUCCESS |
                         DeliveryNotification.ON_FAILURE,
                         app.delivery_notification)
        self.assertEqual("foo", app.smtp_server)
        self.assertEqual(587, app.port)
        self.assertTrue(app.use_ssl)
        self.assertEqual("chris", app.username)
        self.assertEqual("rossi", app.password)
        self.assertTrue(app.debug_smtp)
        self.assertEqual([self.attachment], app.attachments)
        self.assertEqual(app.mailer_factory.keywords, {"debug_smtp": True})

    def test_args_missing_sender(self):
        cmdline = "sendmessage --to you@example.com --subject Hello"
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_username_no_password(self):
        # Test username without password
        cmdline = "sendmessage %s --username chris" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(logged, ["Must use username and password together."])

    def test_args_to_no_to(self):
        cmdline = "sendmessage %s --to" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_smtp_server_no_smtp_server(self):
        cmdline = "sendmessage %s --smtp-server" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_port_no_port(self):
        cmdline = "sendmessage %s --port" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_bad_port(self):
        cmdline = "sendmessage %s --port foo" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_negative_port(self):
        cmdline = "sendmessage %s --port -25" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_bad_priority(self):
        cmdline = "sendmessage %s --priority urgent" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_bad_delivery_notification(self):
        cmdline = "sendmessage %s --delivery-notification Sometimes" % (
            REQUIRED)
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_config_no_config(self):
        cmdline = "sendmessage %s --config" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_bad_arg(self):
        cmdline = "sendmessage --foo %s" % REQUIRED
        app, logged = self._captureLoggedErrors(cmdline)
        self.assertTrue(app._error)
        self.assertEqual(len(logged), 1)

    def test_args_body_from_stdin(self):
        cmdline = "sendmessage %s --body -" % REQUIRED
        app = ConsoleApp(cmdline.split(), StringIO("Read from stdin\n"))
        self.assertFalse(app._error)
        self.assertEqual("Read from stdin\n", app.body)

    def test_args_body_from_stdin_not_read_on_error(self):
        stdin = StringIO("Read from stdin\n")
        cmdline = "sendmessage --body - --bogus"
        app, logged = self._captureLoggedErrors(cmdline, stdin)
        self.assertTrue(app._error)
        self.assertEqual("-", app.body)
        self.assertEqual(stdin.tell(), 0)

    def test_ini_parse(self):
        ini_path = os.path.join(self.dir, "sendmessage.ini")
        with open(ini_path, "w") as f:
            f.write(test_ini)

        # Override most everything
        cmdline = "sendmessage --config %s %s" % (ini_path, REQUIRED)
        app = ConsoleApp(cmdline.split())
        self.assertFalse(app._error)
        self.assertEqual("testhost", app.default_smtp_server)
        self.assertEqual(None, app.smtp_server)
        self.assertEqual(2525, app.port)
        self.assertEqual("Chris", app.username)
        self.assertEqual("Rossi", app.password)
        self.assertTrue(app.use_ssl)
        self.assertEqual("latin-1", app.encoding)
        self.assertFalse(app.debug_smtp)

        # Override nothing, make sure defaults come through
        with open(ini_path, "w") as f:
            f.write("[app:sendmessage]\n\n")

        app = ConsoleApp(cmdline.split())
        self.assertFalse(app._error)
        self.assertEqual(None, app.default_smtp_server)
        self.assertEqual(0, app.port)
        self.assertEqual(None, app.username)
        self.assertEqual(None, app.password)
        self.assertFalse(app.use_ssl)
        self.assertEqual(None, app.encoding)
        self.assertFalse(app.debug_smtp)

    def test_ini_parse_bad_port(self):
        ini_path = os.path.join(self.dir, "sendmessage.ini")
        for port in ("-25", "smtp"):
            with open(ini_path, "w") as f:
                f.write("[app:sendmessage]\nport = %s\n" % port)
            cmdline = "sendmessage --config %s %s" % (ini_path, REQUIRED)
            app, logged = self._captureLoggedErrors(cmdline)
            self.assertTrue(app._error)
            self.assertEqual(len(logged), 1)
            self.assertTrue(port in logged[0])
            self.assertEqual(0, app.port)
            app.mailer_factory = self.factory
            self.assertEqual(app.main(), 1)
            self.assertEqual(self.factory.mailers, [])

    def test_ini_parse_missing_section(self):
        ini_path = os.path.join(self.dir, "other.ini")
        with open(ini_path, "w") as f:
            f.write("[app:other]\nport = 99\n")
        cmdline = "sendmessage --config %s %s" % (ini_path, REQUIRED)
        app = ConsoleApp(cmdline.split())
        self.assertFalse(app._error)
        self.assertEqual(0, app.port)

    def test_command_line_overrides_ini(self):
        ini_path = os.path.join(self.dir, "sendmessage.ini")
        with open(ini_path, "w") as f:
            f.write(test_ini)
        cmdline = "sendmessage --config %s --port 26 %s" % (
            ini_path, REQUIRED)
        app = ConsoleApp(cmdline.split())
        self.assertEqual(26, app.port)

    def test_delivery(self):
        cmdline = "sendmessage %s --smtp-server mail.example.com %s" % (
            REQUIRED, self.attachment)
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 0)
        mailer, = self.factory.mailers
        self.assertEqual(mailer.target.host, "mail.example.com")
        fromaddr, toaddrs, message, notify = mailer.sent[0]
        self.assertEqual(fromaddr, "me@example.com")
        self.assertEqual(toaddrs, ["you@example.com"])
        self.assertEqual(message["Subject"], "Hello")
        self.assertEqual(message.get_content_type(), "multipart/mixed")

    def test_delivery_credentials(self):
        cmdline = ("sendmessage %s --smtp-server mail.example.com "
                   "--username chris --password rossi" % REQUIRED)
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 0)
        target = self.factory.mailers[0].target
        self.assertEqual(target.credential, ("chris", "rossi"))
        self.assertFalse(target.use_default_credentials)

    def test_delivery_default_host_from_ini(self):
        ini_path = os.path.join(self.dir, "sendmessage.ini")
        with open(ini_path, "w") as f:
            f.write("[app:sendmessage]\nsmtp_server = relay.example.com\n")
        cmdline = "sendmessage --config %s %s" % (ini_path, REQUIRED)
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 0)
        self.assertEqual(self.factory.mailers[0].target.host,
                         "relay.example.com")

    def test_delivery_default_host_from_environ(self):
        os.environ["SMTP_SERVER"] = "env.example.com"
        app = self._makeApp("sendmessage %s" % REQUIRED)
        self.assertEqual(app.main(), 0)
        self.assertEqual(self.factory.mailers[0].target.host,
                         "env.example.com")

    def test_delivery_no_host(self):
        app = self._makeApp("sendmessage %s" % REQUIRED)
        self.assertEqual(app.main(), 1)
        self.assertEqual(self.factory.mailers, [])

    def test_delivery_bad_sender(self):
        cmdline = ("sendmessage --from bogus --to you@example.com "
                   "--subject Hello --smtp-server mail.example.com")
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 1)
        self.assertEqual(self.factory.mailers, [])

    def test_delivery_missing_attachment(self):
        cmdline = "sendmessage %s --smtp-server mail.example.com %s" % (
            REQUIRED, os.path.join(self.dir, "missing.txt"))
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 0)
        self.assertEqual(len(self.factory.mailers), 1)

    def test_delivery_failure(self):
        import smtplib
        self.factory.raises = smtplib.SMTPServerDisconnected("gone")
        cmdline = "sendmessage %s --smtp-server mail.example.com" % REQUIRED
        app = self._makeApp(cmdline)
        self.assertEqual(app.main(), 2)

test_ini = """[app:sendmessage]
smtp_server = testhost
port = 2525
username = Chris
password = Rossi
use_ssl = True
encoding = latin-1
debug_smtp = False
"""


class _Monkey(object):

    def __init__(self, module, **replacements):
        self.module = module
        self.orig = {}
        self.replacements = replacements

    def __enter__(self):
        for k, v in self.replacements.items():
            orig = getattr(self.module, k, self)
            if orig is not self:
                self.orig[k] = orig
            setattr(self.module, k, v)

    def __exit__(self, *exc_info):
        for k, v in self.replacements.items():
            if k in self.orig:
                setattr(self.module, k, self.orig[k])
            else: #pragma NO COVER
                delattr(self.module, k)
