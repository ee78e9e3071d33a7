from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


TRANSACTIONS_CSV = (
    "TransID,Symbol,Account,Date,Status Tr,TransSubType,Qty Change,Cost change,Realized3,Cash Impact,Net Price,Db,Sh_name_eng\n"
    "1,Deposit,A,2024-01-01,Open Items,Deposit,0,0,0,2000,0,0,\n"
    "2,X,A,2024-01-02,Open Items,Buy,100,1000,0,-1000,10,1000,X Corp\n"
    "3,X,A,2024-01-03,Open Items,Sell,-40,-400,50,450,11.25,0,X Corp\n"
    "4,Y,A,2024-01-02,YTD Clear,Buy,10,100,0,-100,10,100,Y Co\n"
    "5,Y,A,2024-01-03,YTD Clear,Sell,-10,-100,20,120,12,0,Y Co\n"
    "6,Deposit,B,2024-01-01,Open Items,Deposit,0,0,0,500,0,0,\n"
    "7,X,B,2024-01-02,Open Items,Buy,10,100,0,-100,10,100,X Corp\n"
    "8,BOND@2027,B,2024-01-02,Open Deposits,Buy,100,100,0,-100,1,100,Bond 2027\n"
    "9,Cash,Bank,2024-01-01,Open Items,Deposit,0,0,0,300,0,0,\n"
    "10,Z,all,2024-01-02,Open Items,Buy,1,1,0,-1,1,1,\n"
)

SYMBOLS_CSV = (
    "Symbol,Sh_name_eng,Sector\n"
    "X,X Corp,Industrials\n"
    "Y,Y Co,Banks\n"
    "EGX30,EGX 30 Index,Index\n"
)

QUOTES_CSV = (
    "Symbol,Date,Close\n"
    "X,2024-01-02,10\n"
    "X,2024-01-03,12\n"
    "Y,2024-01-02,10\n"
    "BOND,2024-01-02,0.98\n"
    "EGX30,2024-01-02,1000\n"
    "EGX30,2024-01-03,1100\n"
)


@pytest.fixture()
def transactions_csv() -> str:
    return TRANSACTIONS_CSV


@pytest.fixture()
def symbols_csv() -> str:
    return SYMBOLS_CSV


@pytest.fixture()
def quotes_csv() -> str:
    return QUOTES_CSV


@pytest.fixture()
def input_files(tmp_path: Path) -> dict[str, Path]:
    paths = {
        "transactions": tmp_path / "transactions.csv",
        "symbols": tmp_path / "symbols.csv",
        "quotes": tmp_path / "quotes.csv",
    }
    paths["transactions"].write_text(TRANSACTIONS_CSV, encoding="utf-8")
    paths["symbols"].write_text(SYMBOLS_CSV, encoding="utf-8")
    paths["quotes"].write_text(QUOTES_CSV, encoding="utf-8")
    return paths
