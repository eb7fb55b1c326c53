"""Unit tests for StorageService."""
import pytest
import json
import os
import tempfile
import threading
from unittest.mock import patch
from src.services.storage_service import load_json, save_json, lock_file


@pytest.fixture
def temp_json_file():
    """Create a temporary JSON file for testing."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False, encoding='utf-8') as f:
        test_data = {"test": "data", "number": 42}
        json.dump(test_data, f, ensure_ascii=False)
        temp_path = f.name

    yield temp_path

    for path in (temp_path, f"{temp_path}.lock"):
        if os.path.exists(path):
            os.remove(path)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = tempfile.mkdtemp()
    yield temp_path

    import shutil
    if os.path.exists(temp_path):
        shutil.rmtree(temp_path)


class TestLoadJson:
    """Test load_json function."""

    def test_load_valid_json(self, temp_json_file):
        """Test loading valid JSON file."""
        data = load_json(temp_json_file)
        assert data["test"] == "data"
        assert data["number"] == 42

    def test_load_json_with_utf8(self, temp_dir):
        """Test loading JSON with Arabic text."""
        file_path = os.path.join(temp_dir, "arabic.json")
        test_data = {"name": "سارة أحمد", "college": "كلية الهندسة"}

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(test_data, f, ensure_ascii=False)

        data = load_json(file_path)
        assert data["name"] == "سارة أحمد"
        assert data["college"] == "كلية الهندسة"

    def test_load_nonexistent_file_raises_error(self):
        """Test loading non-existent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="File not found"):
            load_json("/nonexistent/path/file.json")

    def test_load_nonexistent_file_with_default(self):
        """Test a missing file yields a fresh copy of the default."""
        default = {"registrations": []}

        data = load_json("/nonexistent/path/file.json", default=default)
        data["registrations"].append({"id": "r1"})

        assert default == {"registrations": []}

    def test_load_malformed_json_raises_error(self, temp_dir):
        """Test loading malformed JSON raises JSONDecodeError."""
        file_path = os.path.join(temp_dir, "malformed.json")

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write("{invalid json")

        with pytest.raises(json.JSONDecodeError):
            load_json(file_path)

    def test_load_empty_file_raises_error(self, temp_dir):
        """Test loading empty file raises JSONDecodeError."""
        file_path = os.path.join(temp_dir, "empty.json")

        with open(file_path, 'w', encoding='utf-8') as f:
            pass

        with pytest.raises(json.JSONDecodeError):
            load_json(file_path)

    def test_load_retries_permission_errors(self, temp_json_file):
        """Test transient permission errors are retried, then raised."""
        with patch("builtins.open", side_effect=PermissionError("busy")) as mock_open:
            with pytest.raises(PermissionError, match="after 2 attempts"):
                load_json(temp_json_file, retry_count=2, retry_delay=0)

        assert mock_open.call_count == 2


class TestSaveJson:
    """Test save_json function."""

    def test_save_valid_json(self, temp_dir):
        """Test saving valid JSON data."""
        file_path = os.path.join(temp_dir, "test.json")
        test_data = {"key": "value", "number": 123}

        save_json(file_path, test_data)

        assert os.path.exists(file_path)

        with open(file_path, 'r', encoding='utf-8') as f:
            loaded_data = json.load(f)

        assert loaded_data == test_data

    def test_save_json_with_utf8(self, temp_dir):
        """Test Arabic text is stored unescaped."""
        file_path = os.path.join(temp_dir, "arabic.json")
        test_data = {"name": "سارة", "interests": ["برمجة", "تسويق"]}

        save_json(file_path, test_data)

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        assert "سارة" in content
        assert "تسويق" in content

    def test_save_creates_directory(self, temp_dir):
        """Test save_json creates parent directory if needed."""
        file_path = os.path.join(temp_dir, "subdir", "test.json")

        save_json(file_path, {"test": "data"})

        assert os.path.exists(file_path)

    def test_save_overwrites_existing_file(self, temp_dir):
        """Test saving replaces previous content."""
        file_path = os.path.join(temp_dir, "test.json")
        save_json(file_path, {"version": 1})
        save_json(file_path, {"version": 2})

        assert load_json(file_path) == {"version": 2}

    def test_save_leaves_no_temp_files(self, temp_dir):
        """Test the temp file is renamed into place."""
        file_path = os.path.join(temp_dir, "test.json")

        save_json(file_path, {"a": 1})

        assert os.listdir(temp_dir) == ["test.json"]

    def test_failed_replace_keeps_original(self, temp_dir):
        """Test a failed write raises IOError and leaves the old file intact."""
        file_path = os.path.join(temp_dir, "test.json")
        save_json(file_path, {"version": 1})

        with patch("src.services.storage_service.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(IOError, match="Failed to write file"):
                save_json(file_path, {"version": 2})

        assert load_json(file_path) == {"version": 1}
        assert os.listdir(temp_dir) == ["test.json"]


class TestLockFile:
    """Test lock_file context manager."""

    def test_lock_file_basic(self, temp_json_file):
        """Test basic file locking."""
        with lock_file(temp_json_file):
            data = load_json(temp_json_file)
            assert "test" in data

    def test_lock_file_releases_lock(self, temp_json_file):
        """Test lock is released after context exits."""
        with lock_file(temp_json_file):
            pass

        with lock_file(temp_json_file):
            pass

    def test_lock_before_file_exists(self, temp_dir):
        """Test locking works before the data file is created."""
        file_path = os.path.join(temp_dir, "new", "teamup.json")

        with lock_file(file_path):
            save_json(file_path, {"count": 0})

        assert load_json(file_path) == {"count": 0}

    def test_lock_protects_critical_section(self, temp_dir):
        """Test concurrent read-modify-write cycles don't lose updates."""
        file_path = os.path.join(temp_dir, "counter.json")
        save_json(file_path, {"count": 0})

        def increment():
            for _ in range(10):
                with lock_file(file_path):
                    data = load_json(file_path)
                    data["count"] += 1
                    save_json(file_path, data)

        threads = [threading.Thread(target=increment) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert load_json(file_path)["count"] == 40
