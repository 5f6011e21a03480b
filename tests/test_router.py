from deltaforce.handlers import HANDLERS
from deltaforce.router import CommandDef, CommandRouter, load_commands

PREFIXES = ["三角洲", "^"]


def test_bundled_table_points_at_known_handlers():
    commands = load_commands()
    assert commands
    for command in commands:
        assert command.handler in HANDLERS, command.handler


def test_text_without_prefix_is_ignored():
    router = CommandRouter.from_file()
    assert router.match("干员列表", PREFIXES) is None
    assert router.match("", PREFIXES) is None


def test_both_prefixes_route():
    router = CommandRouter.from_file()
    for text in ("三角洲干员列表", "^干员列表", "  三角洲 干员列表  "):
        route = router.match(text, PREFIXES)
        assert route is not None, text
        assert route.command.handler == "getOperatorList"
        assert route.args == ""


def test_longest_keyword_wins():
    router = CommandRouter.from_file()

    listing = router.match("^干员列表", PREFIXES)
    detail = router.match("^干员 红狼", PREFIXES)

    assert listing.command.handler == "getOperatorList"
    assert detail.command.handler == "getOperator"
    assert detail.args == "红狼"


def test_arguments_are_rejected_for_plain_commands():
    router = CommandRouter.from_file()
    assert router.match("^每日密码 今天", PREFIXES) is None
    assert router.match("^每日密码", PREFIXES).command.handler == "getDailyKeyword"


def test_ai_comment_keeps_arguments():
    router = CommandRouter.from_file()
    route = router.match("三角洲ai锐评 烽火 cxg", PREFIXES)
    assert route.command.handler == "aiComment"
    assert route.args == "烽火 cxg"


def test_table_entries_are_validated(tmp_path):
    path = tmp_path / "commands.yaml"
    path.write_text(
        "commands:\n"
        "  - name: ok\n"
        "    handler: ping\n"
        "    keywords: 测试\n"
        "  - name: no-handler\n"
        "    keywords: [x]\n"
        "  - just a string\n",
        encoding="utf-8",
    )

    commands = load_commands(path)

    assert commands == [CommandDef(name="ok", handler="ping", keywords=("测试",), has_args=False)]


def test_unreadable_table_gives_empty_router(tmp_path):
    router = CommandRouter.from_file(tmp_path / "missing.yaml")
    assert router.commands == []
    assert router.match("^干员列表", PREFIXES) is None
