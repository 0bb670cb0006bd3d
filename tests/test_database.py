from orderflow.database import FileBackedDB


def test_create_get_update_delete(file_db):
    rec = file_db.create_record("orders", {"customer_id": "c1", "state": "CREATED"})
    assert rec["id"]

    row = file_db.get_record("orders", "id", rec["id"])
    assert row["customer_id"] == "c1"
    assert row["state"] == "CREATED"

    updated = file_db.update_record("orders", "id", rec["id"], {"state": "PAID", "notes": None})
    assert updated["state"] == "PAID"
    assert file_db.get_record("orders", "id", rec["id"])["state"] == "PAID"

    assert file_db.delete_record("orders", "id", rec["id"]) is True
    assert file_db.get_record("orders", "id", rec["id"]) is None
    assert file_db.delete_record("orders", "id", rec["id"]) is False


def test_missing_table_behaves_empty(file_db):
    assert file_db.list_records("orders") == []
    assert file_db.get_record("orders", "id", "x") is None
    assert file_db.find_records("orders", "state", "PAID") == []
    assert file_db.update_record("orders", "id", "x", {"state": "PAID"}) is None
    assert file_db.delete_record("orders", "id", "x") is False


def test_ensure_table_writes_header_once(file_db, temp_data_dir):
    path = file_db.ensure_table("orders", ["id", "state"])
    assert path == temp_data_dir / "orders.csv"
    assert path.read_text().strip() == "id,state"

    file_db.create_record("orders", {"id": "o1", "state": "CREATED"})
    file_db.ensure_table("orders", ["id", "state"])
    assert file_db.get_record("orders", "id", "o1")["state"] == "CREATED"


def test_values_come_back_as_strings(file_db):
    file_db.create_record("orders", {"id": "007", "total_amount": 12.5})
    row = file_db.get_record("orders", "id", "007")
    assert row["id"] == "007"
    assert row["total_amount"] == "12.5"


def test_update_adds_missing_column(file_db):
    file_db.create_record("orders", {"id": "o1", "state": "CREATED"})
    row = file_db.update_record("orders", "id", "o1", {"updated_at": "2024-01-01 00:00:00"})
    assert row["updated_at"] == "2024-01-01 00:00:00"


def test_unknown_table_maps_to_csv_name(temp_data_dir):
    store = FileBackedDB()
    store.create_record("audit", {"event": "PAY"})
    assert (temp_data_dir / "audit.csv").exists()
    assert len(store.list_records("audit")) == 1


def test_na_like_strings_survive_a_read(file_db):
    for i, text in enumerate(["NA", "null", "None", "N/A", "nan"]):
        file_db.create_record("orders", {"id": f"o{i}", "customer_id": text, "notes": text})
        row = file_db.get_record("orders", "id", f"o{i}")
        assert row["customer_id"] == text
        assert row["notes"] == text
    assert len(file_db.find_records("orders", "customer_id", "NA")) == 1


def test_empty_cells_read_as_empty_strings(file_db):
    file_db.create_record("orders", {"id": "o1", "notes": None})
    assert file_db.get_record("orders", "id", "o1")["notes"] == ""
