from __future__ import annotations

import json

import pytest

from storefront.cli import main
from storefront.core.security import verify_access_token


def test_token_issue_prints_a_verifiable_token(capsys):
    assert main(["token", "issue", "--user-id", "ops-1", "--role", "admin"]) == 0
    token = capsys.readouterr().out.strip()

    principal = verify_access_token(token)
    assert principal.user_id == "ops-1"
    assert principal.role == "admin"


def test_orders_list_prints_one_page_as_json(capsys, make_product, fill_cart, new_user, order_payload, client, bearer):
    user_id = new_user()
    fill_cart(user_id, (make_product(), 1))
    client.post("/orders", json=order_payload, headers=bearer(user_id))

    assert main(["orders", "list", "--user-id", user_id, "--limit", "5"]) == 0
    page = json.loads(capsys.readouterr().out)

    assert page["pagination"]["total_orders"] == 1
    assert page["pagination"]["page_size"] == 5
    assert page["orders"][0]["user_id"] == user_id


def test_unknown_status_is_rejected_by_the_parser():
    with pytest.raises(SystemExit):
        main(["orders", "list", "--status", "lost"])
