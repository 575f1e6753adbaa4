from click.testing import CliRunner

from bcare.cli import cli
from bcare.core.security import actor_from_token
from bcare.schemas.auth import ActorKind


def test_issue_token_for_agent():
    result = CliRunner().invoke(
        cli, ["issue-token", "--actor-id", "12", "--role-id", "1", "--division-id", "1"]
    )

    assert result.exit_code == 0, result.output
    actor = actor_from_token(result.output.strip())
    assert actor.id == 12
    assert actor.kind == ActorKind.EMPLOYEE
    assert actor.is_cxc_agent


def test_issue_token_for_customer():
    result = CliRunner().invoke(cli, ["issue-token", "--actor-id", "3", "--kind", "customer"])

    assert result.exit_code == 0, result.output
    assert actor_from_token(result.output.strip()).is_customer


def test_sla_check_requires_kind():
    result = CliRunner().invoke(cli, ["sla-check"])

    assert result.exit_code != 0
