import json

from sqlmodel import Session

from offshore import cli


def test_parser_defaults():
    args = cli.build_parser().parse_args(["remind-due", "--limit", "5"])
    assert args.command == "remind-due"
    assert args.limit == 5


def test_remind_due_prints_summary(engine, monkeypatch, capsys):
    monkeypatch.setattr(cli, "create_all", lambda: None)
    monkeypatch.setattr(cli, "SessionLocal", lambda: Session(engine))

    assert cli.main(["remind-due", "--app-url", "https://app.test"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["totalMatched"] == 0
