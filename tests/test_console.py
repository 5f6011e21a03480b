import asyncio
import io

from deltaforce.handlers import Reply
from transports.console import ConsoleTransport, render_reply


class EchoBot:
    def __init__(self, error=None):
        self.error = error
        self.seen = []

    async def handle_message(self, user_id, text, *, group_id=None):
        self.seen.append((user_id, text, group_id))
        if self.error:
            raise self.error
        return [Reply(text=f"echo {text}", at_sender=True)]


def test_render_plain_forward_and_audio():
    assert render_reply(Reply(text="hi")) == "hi"
    assert render_reply(Reply(text="hi", at_sender=True)) == "@you hi"
    assert render_reply(Reply(messages=["a", "b"], nickname="干员")) == "[forward:干员]\n---\na\n---\nb"
    assert render_reply(Reply(audio="base64://QUJD")) == "[audio] base64 audio (4 chars)"
    assert render_reply(Reply(audio="https://cdn/x.mp3")) == "[audio] https://cdn/x.mp3"
    assert render_reply(Reply()) == ""


def test_handle_line_prints_replies():
    out = io.StringIO()
    bot = EchoBot()
    transport = ConsoleTransport(bot, user_id="42", group_id="7", stream=out)

    async def run():
        await transport.handle_line("  ^每日密码 \n")
        await transport.handle_line("   ")

    asyncio.run(run())

    assert bot.seen == [("42", "^每日密码", "7")]
    assert out.getvalue() == "@you echo ^每日密码\n"


def test_handler_errors_become_a_generic_reply():
    out = io.StringIO()
    transport = ConsoleTransport(EchoBot(error=RuntimeError("boom")), stream=out)

    asyncio.run(transport.handle_line("^干员列表"))

    assert out.getvalue() == "服务暂时不可用，请稍后再试\n"


def test_exit_line_stops_reading(monkeypatch):
    out = io.StringIO()
    bot = EchoBot()
    transport = ConsoleTransport(bot, stream=out)
    monkeypatch.setattr("sys.stdin", io.StringIO("^每日密码\nexit\n^干员列表\n"))

    asyncio.run(transport.start())

    assert [seen[1] for seen in bot.seen] == ["^每日密码"]
