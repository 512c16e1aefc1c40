"""End-to-end journal API tests over a temporary sqlite database."""

import asyncio
import base64
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import Text, text

from app.models import Transaction
from app.providers.llm import AIServiceError

EXPORT = "\n".join(
    [
        "Summary,Data,Starting Cash,5000",
        "Transaction History,Header,Date,Account,Description,Transaction Type,Symbol,"
        "Quantity,Price,Gross Amount,Commission,Net Amount",
        "Transaction History,Data,2024-01-15,U123,Apple Inc,Buy,AAPL,10,150,-1500,-1,-1501",
        "Transaction History,Data,2024-01-20,U123,Apple Inc,Sell,AAPL,-10,160,1600,-1,1599",
        "Transaction History,Data,2024-01-22,U123,Microsoft,Buy,MSFT,5,400,-2000,-1,-1",
        "Transaction History,Data,,,,,Total,,,,,97",
    ]
)

REPORT = "## Auditoría\nSetup limpio.\n[SENTIMENT] LONG: 70%, SHORT: 30%\n[TRADE_PLAN] ENTRY: 100, STOP: 95, TARGET: 110"

CHART = base64.b64encode(b"chart-bytes").decode()
CALENDAR = base64.b64encode(b"calendar-bytes").decode()
CARD = base64.b64encode(b"card-bytes").decode()


class StubLLM:
    def __init__(self) -> None:
        self.audits: list[dict[str, object]] = []
        self.fail = False

    async def audit_chart(self, chart_image, calendar_image=None, references=()):
        if self.fail:
            raise AIServiceError("upstream unavailable")
        self.audits.append({"chart": chart_image, "calendar": calendar_image, "references": list(references)})
        return REPORT

    async def analyze_performance(self, transactions):
        return f"Analizadas {len(list(transactions))} transacciones"


@asynccontextmanager
async def _trader(open_client, llm: StubLLM | None = None):
    async with open_client(llm or StubLLM()) as (client, database):
        registered = await client.post("/auth/register", json={"email": "trader@example.com", "password": "supersecret"})
        client.headers["Authorization"] = f"Bearer {registered.json()['access_token']}"
        yield client, database


def test_balance_defaults_per_partition(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            demo = await api.get("/balances/current")
            assert demo.status_code == 200
            assert demo.json()["account_label"] == "demo"
            assert demo.json()["starting_cash"] == 50000

            real = await api.get("/balances/current", headers={"X-Account-Label": "real"})
            assert real.json()["starting_cash"] == 0
            assert real.json()["updated_at"] is None

            updated = await api.put(
                "/balances/current", json={"starting_cash": 1234.5}, headers={"X-Account-Label": "real"}
            )
            assert updated.json()["starting_cash"] == 1234.5
            again = await api.put(
                "/balances/current", json={"starting_cash": 2000}, headers={"X-Account-Label": "real"}
            )
            assert again.json()["starting_cash"] == 2000

            unknown = await api.get("/balances/current", headers={"X-Account-Label": "paper"})
            assert unknown.status_code == 400

    asyncio.run(_scenario())


def test_active_account_is_persisted(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            assert (await api.get("/session/account")).json() == {"account_label": "demo"}

            selected = await api.put("/session/account", json={"account_label": "real"})
            assert selected.json() == {"account_label": "real"}

            balance = await api.get("/balances/current")
            assert balance.json()["account_label"] == "real"

            invalid = await api.put("/session/account", json={"account_label": "paper"})
            assert invalid.status_code == 422

    asyncio.run(_scenario())


def test_import_then_dashboard(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            preview = await api.post("/imports/preview", json={"text": EXPORT})
            assert preview.json() == {"row_count": 4, "starting_cash": 5000}

            imported = await api.post("/imports", json={"text": EXPORT, "strategy": "Momentum"})
            assert imported.status_code == 201
            assert imported.json()["imported"] == 3
            assert imported.json()["starting_cash"] == 5000

            balance = await api.get("/balances/current")
            assert balance.json()["starting_cash"] == 5000

            transactions = (await api.get("/transactions")).json()
            assert len(transactions) == 3
            assert {tx["strategy"] for tx in transactions} == {"Momentum"}

            trades = (await api.get("/trades")).json()
            assert [trade["symbol"] for trade in trades] == ["MSFT", "AAPL"]
            aapl = trades[1]
            assert aapl["status"] == "Closed"
            assert aapl["total_pnl"] == 98
            assert len(aapl["executions"]) == 2

            dashboard = (await api.get("/dashboard")).json()
            assert dashboard["configured"] is True
            assert dashboard["stats"]["total_pnl"] == 97
            assert dashboard["stats"]["current_balance"] == 5097
            assert dashboard["stats"]["open_positions"] == 1
            assert dashboard["stats"]["best_strategy"]["name"] == "Momentum"
            assert dashboard["equity_curve"][0] == {"date": "Balance Inicial", "balance": 5000}
            assert dashboard["equity_curve"][-1] == {"date": "2024-01-22", "balance": 5097}

            real = (await api.get("/dashboard", headers={"X-Account-Label": "real"})).json()
            assert real == {
                "configured": False,
                "account_label": "real",
                "starting_cash": 0,
                "stats": None,
                "equity_curve": [],
            }

    asyncio.run(_scenario())


def test_import_errors_persist_nothing(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            missing_header = await api.post("/imports", json={"text": "Summary,Data,Starting Cash,10"})
            assert missing_header.status_code == 422
            assert "Transaction History" in missing_header.json()["detail"]

            empty = await api.post("/imports", json={"text": ""})
            assert empty.status_code == 422

            balance_only = await api.post("/imports", json={"text": "", "starting_cash": 800})
            assert balance_only.status_code == 201
            assert balance_only.json()["imported"] == 0

            assert (await api.get("/transactions")).json() == []
            assert (await api.get("/balances/current")).json()["starting_cash"] == 800

    asyncio.run(_scenario())


def test_edit_delete_and_link_transactions(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            await api.post("/imports", json={"text": EXPORT})
            transactions = (await api.get("/transactions")).json()
            aapl_ids = [tx["id"] for tx in transactions if tx["symbol"] == "AAPL"]
            msft_id = next(tx["id"] for tx in transactions if tx["symbol"] == "MSFT")

            patched = await api.patch(f"/transactions/{msft_id}", json={"strategy": "Swing"})
            assert patched.status_code == 200
            assert patched.json()["strategy"] == "Swing"

            other_partition = await api.patch(
                f"/transactions/{msft_id}", json={"strategy": "X"}, headers={"X-Account-Label": "real"}
            )
            assert other_partition.status_code == 404

            linked = await api.post(
                "/transactions/link",
                json={"transaction_ids": aapl_ids, "analysis_image_url": "http://test/storage/chart-images/a.jpg"},
            )
            assert linked.json() == {"updated": 2}
            trades = {trade["symbol"]: trade for trade in (await api.get("/trades")).json()}
            assert trades["AAPL"]["analysis_image_url"] == "http://test/storage/chart-images/a.jpg"

            uploaded = await api.post("/transactions/link", json={"transaction_ids": [msft_id], "image": CHART})
            assert uploaded.json() == {"updated": 1}
            msft = next(tx for tx in (await api.get("/transactions")).json() if tx["id"] == msft_id)
            assert "/manual-trade-charts/" in msft["analysis_image_url"]

            unconfirmed = await api.delete(f"/transactions/{msft_id}")
            assert unconfirmed.status_code == 428
            deleted = await api.delete(f"/transactions/{msft_id}", params={"confirm": "true"})
            assert deleted.status_code == 204
            assert len((await api.get("/transactions")).json()) == 2

            missing = await api.delete(f"/transactions/{msft_id}", params={"confirm": "true"})
            assert missing.status_code == 404

    asyncio.run(_scenario())


def test_missing_unique_constraint_is_reported(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, database):
            async with database.engine.begin() as connection:
                await connection.execute(text("DROP TABLE account_balances"))
                await connection.execute(
                    text(
                        "CREATE TABLE account_balances (id INTEGER PRIMARY KEY, user_id CHAR(32), "
                        "account_label VARCHAR(8), starting_cash NUMERIC, updated_at DATETIME)"
                    )
                )

            response = await api.put("/balances/current", json={"starting_cash": 100})
            assert response.status_code == 500
            body = response.json()
            assert "UNIQUE" in body["detail"]
            assert body["remediation"] == (
                "ALTER TABLE account_balances ADD CONSTRAINT unique_user_account UNIQUE (user_id, account_label);"
            )

    asyncio.run(_scenario())


def test_chart_audit_lifecycle(open_client, tmp_path: Path):
    llm = StubLLM()

    async def _scenario():
        async with _trader(open_client, llm) as (api, _):
            card = await api.post(
                "/strategies", json={"title": "ORB", "description": "Ruptura del rango", "image": CARD}
            )
            assert card.status_code == 201

            first = await api.post("/analyses", json={"chart_image": CHART, "calendar_image": CALENDAR})
            assert first.status_code == 201
            body = first.json()
            assert body["sentiment"] == {"long": 70, "short": 30}
            assert body["trade_plan"] == {"entry": "100", "stop": "95", "target": "110"}
            assert body["analysis_text"] == "## Auditoría\nSetup limpio."
            assert body["account_label"] == "demo"
            assert "/demo/" in body["image_url"]
            assert body["calendar_image_url"]
            reference = llm.audits[0]["references"][0]
            assert reference.title == "ORB"
            assert reference.image == CARD

            today = (await api.get("/calendars/today")).json()
            assert today["image_url"] == body["calendar_image_url"]

            second = await api.post("/analyses", json={"chart_image": CHART})
            assert second.json()["calendar_image_url"] == body["calendar_image_url"]
            assert llm.audits[1]["calendar"] == CALENDAR

            history = (await api.get("/analyses")).json()
            assert len(history) == 2
            assert all(item["sentiment"] == {"long": 70, "short": 30} for item in history)
            assert (await api.get("/analyses", headers={"X-Account-Label": "real"})).json() == []

            image_path = tmp_path / "storage" / "chart-images" / body["image_url"].split("/chart-images/", 1)[1]
            assert image_path.read_bytes() == b"chart-bytes"

            assert (await api.delete(f"/analyses/{body['id']}")).status_code == 428
            deleted = await api.delete(f"/analyses/{body['id']}", params={"confirm": "true"})
            assert deleted.status_code == 204
            assert not image_path.exists()
            assert len((await api.get("/analyses")).json()) == 1

            cards = (await api.get("/strategies")).json()
            removed = await api.delete(f"/strategies/{cards[0]['id']}", params={"confirm": "true"})
            assert removed.status_code == 204
            assert (await api.get("/strategies")).json() == []

            llm.fail = True
            failed = await api.post("/analyses", json={"chart_image": CHART})
            assert failed.status_code == 502

    asyncio.run(_scenario())


def test_insights_use_partition_transactions(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            await api.post("/imports", json={"text": EXPORT})

            demo = await api.post("/insights")
            assert demo.json() == {"analysis": "Analizadas 3 transacciones"}

            real = await api.post("/insights", headers={"X-Account-Label": "real"})
            assert real.json() == {"analysis": "Analizadas 0 transacciones"}

    asyncio.run(_scenario())


def test_null_edits_are_rejected_without_touching_the_row(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, _):
            await api.post("/imports", json={"text": EXPORT})
            msft_id = next(tx["id"] for tx in (await api.get("/transactions")).json() if tx["symbol"] == "MSFT")

            nulled = await api.patch(f"/transactions/{msft_id}", json={"quantity": None})
            assert nulled.status_code == 422

            mixed = await api.patch(f"/transactions/{msft_id}", json={"strategy": "Swing", "description": None})
            assert mixed.status_code == 422

            msft = next(tx for tx in (await api.get("/transactions")).json() if tx["id"] == msft_id)
            assert msft["quantity"] == 5
            assert msft["strategy"] == "Importación IBKR"
            assert msft["description"] == "Microsoft"

    asyncio.run(_scenario())


def test_database_errors_hide_statement_details(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, database):
            async with database.engine.begin() as connection:
                await connection.execute(text("DROP TABLE transactions"))

            response = await api.get("/transactions")
            assert response.status_code == 500
            assert response.json() == {"detail": "Error de base de datos."}

    asyncio.run(_scenario())


def test_broker_text_columns_are_unbounded(open_client):
    for name in ("header", "date", "account", "description", "transaction_type", "symbol", "strategy"):
        column_type = Transaction.__table__.c[name].type
        assert isinstance(column_type, Text)
        assert column_type.length is None

    description = "Opción call " * 60
    export = "\n".join(
        [
            EXPORT.splitlines()[1],
            f"Transaction History,Data,2024-03-01,U123,{description},Buy,SPY,1,500,-500,-1,-501",
        ]
    )

    async def _scenario():
        async with _trader(open_client) as (api, _):
            response = await api.post("/imports", json={"text": export})
            assert response.status_code == 201
            stored = (await api.get("/transactions")).json()
            assert stored[0]["description"] == description.strip()

    asyncio.run(_scenario())


def test_failed_balance_upsert_rolls_back_imported_rows(open_client):
    async def _scenario():
        async with _trader(open_client) as (api, database):
            async with database.engine.begin() as connection:
                await connection.execute(text("DROP TABLE account_balances"))
                await connection.execute(
                    text(
                        "CREATE TABLE account_balances (id INTEGER PRIMARY KEY, user_id CHAR(32), "
                        "account_label VARCHAR(8), starting_cash NUMERIC, updated_at DATETIME)"
                    )
                )

            response = await api.post("/imports", json={"text": EXPORT})
            assert response.status_code == 500
            assert "unique_user_account" in response.json()["remediation"]
            assert (await api.get("/transactions")).json() == []

    asyncio.run(_scenario())
