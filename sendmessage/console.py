import functools
import logging
import os
import sys
from configparser import ConfigParser

from sendmessage.command import SendMailMessage
from sendmessage.errors import FatalMailError
from sendmessage.mailer import SMTPMailer
from sendmessage.message import DeliveryNotification
from sendmessage.message import Priority
from sendmessage.transport import Credential
from sendmessage.transport import EnvironDefaultHost
from sendmessage.transport import StaticDefaultHost


def _log_error(msg): #pragma NO COVER
    sys.stderr.write(msg)


def boolean(s):
    s = str(s).lower()
    return s.startswith("t") or s.startswith("y") or s.startswith("1")


def string_or_none(s):
    if s == 'None':
        return None
    return s


class ConsoleApp(object):
    """Sends one message from the console.

    The default SMTP server is taken from the ``smtp_server`` option of
    the config file, or else from the ``SMTP_SERVER`` environment
    variable.
    """
    log = logging.getLogger("sendmessage")

    _usage = """%(script_name)s [OPTIONS] [attachment ...]

    OPTIONS:
        --from <address>    Sender address.  Required.

        --to <address>      Recipient address.  Required; may be repeated.

        --cc <address>      Carbon copy recipient.  May be repeated.

        --bcc <address>     Blind carbon copy recipient.  May be repeated.

        --reply-to <address>
                            Reply-To address.  May be repeated.

        --subject <text>    Subject of the message.  Required.

        --body <text>       Body of the message.  Use - to read it from
                            standard input.

        --body-as-html      Send the body as text/html.

        --encoding <name>   Encoding of the subject and body.  Default is
                            the simplest encoding that fits the text.

        --priority <value>  Low, Normal or High.  Default is Normal.

        --delivery-notification <values>
                            Comma separated list of OnSuccess, OnFailure,
                            Delay, Never or None.  Default is None.

        --smtp-server       Name of smtp host to use for delivery.

        --port              Which port on smtp server to deliver mail to.
                            Default is 0, the protocol default.

        --use-ssl           Do not send if the session cannot be encrypted.

        --username          Username to use to log in to smtp server.  Default
                            is none.

        --password          Password to use to log in to smtp server.  Must be
                            specified if username is specified.

        --config <inifile>  Get configuration from specificed ini file.  Will
                            look for etc/sendmessage.ini, by default, where
                            etc is parallel to the bin directory where the
                            python executable is found.

        --debug-smtp        Enable SMTP debug output (STDERR)
    """
    _error = False
    sender = None
    subject = None
    body = None
    body_as_html = False
    encoding = None
    priority = Priority.NORMAL
    delivery_notification = DeliveryNotification.NONE
    smtp_server = None
    default_smtp_server = None
    port = 0
    use_ssl = False
    username = None
    password = None
    debug_smtp = False

    def __init__(self, argv=sys.argv, stdin=None):
        self.script_name = argv[0]
        self.stdin = stdin if stdin is not None else sys.stdin
        self.to = []
        self.cc = []
        self.bcc = []
        self.reply_to = []
        self.attachments = []
        self._load_config()
        self._process_args(argv[1:])
        self.mailer_factory = functools.partial(
            SMTPMailer.from_target, debug_smtp=self.debug_smtp)

    def main(self):
        if self._error:
            return 1

        credential = None
        if self.username and self.password:
            credential = Credential(self.username, self.password)
        if self.default_smtp_server:
            default_host = StaticDefaultHost(self.default_smtp_server)
        else:
            default_host = EnvironDefaultHost()

        command = SendMailMessage(
            self.sender, self.to, self.subject, self.body,
            cc=self.cc, bcc=self.bcc, reply_to=self.reply_to,
            body_as_html=self.body_as_html, encoding=self.encoding,
            priority=self.priority,
            delivery_notification=self.delivery_notification,
            smtp_server=self.smtp_server, port=self.port,
            use_ssl=self.use_ssl, credential=credential,
            default_host=default_host, mailer_factory=self.mailer_factory)
        try:
            command.begin()
        except FatalMailError as e:
            self.log.error("%s", e)
            return 1
        if self.attachments:
            command.process(self.attachments)
        outcome = command.end()
        if not outcome.succeeded:
            return 2
        return 0

    def _process_args(self, args):
        log_usage = False
        lists = {
            "--to": self.to,
            "--cc": self.cc,
            "--bcc": self.bcc,
            "--reply-to": self.reply_to,
        }
        values = {
            "--from": "sender",
            "--subject": "subject",
            "--body": "body",
            "--encoding": "encoding",
            "--smtp-server": "smtp_server",
            "--username": "username",
            "--password": "password",
        }
        while args:
            arg = args.pop(0)
            if arg in lists:
                if not args:
                    log_usage = True
                else:
                    lists[arg].append(args.pop(0))

            elif arg in values:
                if not args:
                    log_usage = True
                else:
                    setattr(self, values[arg], args.pop(0))

            elif arg == "--port":
                try:
                    self.port = int(args.pop(0))
                except (IndexError, ValueError):
                    log_usage = True
                else:
                    if self.port < 0:
                        log_usage = True

            elif arg == "--priority":
                try:
                    self.priority = Priority.coerce(args.pop(0))
                except (IndexError, ValueError):
                    log_usage = True

            elif arg == "--delivery-notification":
                try:
                    self.delivery_notification = (
                        DeliveryNotification.coerce(args.pop(0)))
                except (IndexError, ValueError):
                    log_usage = True

            elif arg == "--body-as-html":
                self.body_as_html = True

            elif arg == "--use-ssl":
                self.use_ssl = True

            elif arg == "--config":
                if not args:
                    log_usage = True
                else:
                    self._load_config(args.pop(0))

            elif arg == "--debug-smtp":
                self.debug_smtp = True

            elif arg.startswith("-") and arg != "-":
                log_usage = True

            else:
                self.attachments.append(arg)

        if not (self.sender and self.to and self.subject):
            log_usage = True

        if log_usage:
            self._error_usage()

        if ((self.username or self.password)
            and not (self.username and self.password)):
            _log_error("Must use username and password together.")
            self._error = True

        if self.body == "-" and not self._error:
            self.body = self.stdin.read()

    def _load_config(self, path=None):
        if path is None:
            # Look in etc directory relative to bin directory of current
            # Python executable for "sendmessage.ini".
            exe = sys.executable
            root = os.path.dirname(os.path.dirname(exe))
            path = os.path.join(root, "etc", "sendmessage.ini")
            if not os.path.exists(path):
                return

        section = "app:sendmessage"
        names = [
            "smtp_server",
            "port",
            "username",
            "password",
            "use_ssl",
            "encoding",
            "debug_smtp",
        ]
        defaults = dict([(name, str(getattr(self, name))) for name in names])
        defaults["smtp_server"] = str(self.default_smtp_server)
        config = ConfigParser(defaults, interpolation=None)
        config.read(path)
        if not config.has_section(section):
            config.add_section(section)

        self.default_smtp_server = string_or_none(
            config.get(section, "smtp_server"))
        port = config.get(section, "port")
        try:
            self.port = int(port)
        except ValueError:
            self.port = -1
        if self.port < 0:
            _log_error("Invalid port %r in %s." % (port, path))
            self.port = 0
            self._error = True
        self.username = string_or_none(config.get(section, "username"))
        self.password = string_or_none(config.get(section, "password"))
        self.use_ssl = boolean(config.get(section, "use_ssl"))
        self.encoding = string_or_none(config.get(section, "encoding"))
        self.debug_smtp = boolean(config.get(section, "debug_smtp"))

    def _error_usage(self):
        _log_error(self._usage % {"script_name": self.script_name})
        self._error = True


def run_console(): #pragma NO COVERAGE
    logging.basicConfig()
    app = ConsoleApp()
    sys.exit(app.main())


if __name__ == "__main__": #pragma NO COVERAGE
    run_console()
