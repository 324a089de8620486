from src.data.token_store import MemoryTokenStore, SQLiteTokenStore


def test_token_survives_reopen(tmp_path):
    db_path = tmp_path / "nested" / "paisa.db"
    store = SQLiteTokenStore(str(db_path))
    assert store.load_token() is None

    store.save_token("first")
    store.save_token("second")
    store.close()

    reopened = SQLiteTokenStore(str(db_path))
    assert reopened.load_token() == "second"

    reopened.clear_token()
    assert reopened.load_token() is None
    reopened.close()


def test_clear_without_token_is_harmless(tmp_path):
    store = SQLiteTokenStore(str(tmp_path / "paisa.db"))
    store.clear_token()
    assert store.load_token() is None
    store.close()


def test_memory_store_round_trip():
    store = MemoryTokenStore("seed")
    assert store.load_token() == "seed"
    store.clear_token()
    assert store.load_token() is None
    store.save_token("next")
    assert store.load_token() == "next"
