import pytest
import tempfile
import shutil
import boto3
from moto import mock_aws
from fastapi.testclient import TestClient

from src.api import dependencies
from src.api.main import app
from src.db.session import DatabaseSessionManager
from src.models.domain import MediaCategory, UploadedFile
from src.services.media_streaming import RangeStreamingHandler
from src.storage.context import StorageContext
from src.storage.local import LocalStorageStrategy
from src.storage.s3 import S3StorageStrategy


NAMESPACES = {
    MediaCategory.SHOP_PROFILE: "shop-profiles",
    MediaCategory.ITEM_MEDIA: "items",
}
TEST_BUCKET = "test-market-media-bucket"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


@pytest.fixture
def temp_storage_path():
    """Create a temporary directory for local storage tests."""
    tmpdir = tempfile.mkdtemp(prefix="test_media_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def namespaces():
    """Namespace per media category, shared by every strategy under test."""
    return dict(NAMESPACES)


@pytest.fixture
def local_strategy(temp_storage_path):
    """Local strategy rooted in a temporary directory."""
    return LocalStorageStrategy(base_path=temp_storage_path, namespaces=NAMESPACES)


@pytest.fixture
def s3_strategy():
    """S3 strategy backed by a mocked bucket."""
    with mock_aws():
        s3_client = boto3.client(
            's3',
            region_name='us-east-1',
            aws_access_key_id='testing',
            aws_secret_access_key='testing'
        )
        s3_client.create_bucket(Bucket=TEST_BUCKET)

        # Create strategy inside the mock context
        strategy = S3StorageStrategy(
            bucket=TEST_BUCKET,
            namespaces=NAMESPACES,
            access_key='testing',
            secret_key='testing',
            region='us-east-1'
        )

        yield strategy


@pytest.fixture(params=["local", "s3"])
def storage_strategy(request):
    """Every strategy implementation, for behaviour that must be identical."""
    return request.getfixturevalue(f"{request.param}_strategy")


@pytest.fixture
def storage_context(local_strategy):
    """Context with local storage active."""
    context = StorageContext({"local": local_strategy})
    context.set_strategy("local")
    return context


@pytest.fixture
def streaming_handler(storage_context):
    return RangeStreamingHandler(storage_context)


@pytest.fixture
def sync_db_manager(tmp_path):
    """Create file-based test database for thread safety."""
    db_path = tmp_path / "test.db"
    manager = DatabaseSessionManager(
        database_url=f"sqlite:///{db_path}",
        echo=False
    )

    # Create tables
    manager.create_tables_sync()

    yield manager

    # Cleanup
    manager.close()


@pytest.fixture
def db_session(sync_db_manager):
    with sync_db_manager.get_sync_session() as session:
        yield session


@pytest.fixture
def sample_image():
    """Small PNG-like payload."""
    return UploadedFile(
        data=b"\x89PNG\r\n\x1a\n" + bytes(range(64)),
        filename="storefront.png",
        content_type="image/png",
    )


@pytest.fixture
def sample_video():
    """Small MP4-like payload."""
    return UploadedFile(
        data=b"\x00\x00\x00\x18ftypmp42" + bytes(range(200)),
        filename="demo.MP4",
        content_type="video/mp4",
    )


@pytest.fixture
def client(storage_context, sync_db_manager):
    """FastAPI test client with real local storage and a SQLite database."""
    handler = RangeStreamingHandler(storage_context)

    def override_get_db():
        with sync_db_manager.get_sync_session() as session:
            yield session

    app.dependency_overrides[dependencies.get_db_session] = override_get_db
    app.dependency_overrides[dependencies.get_storage_context] = lambda: storage_context
    app.dependency_overrides[dependencies.get_streaming_handler] = lambda: handler

    yield TestClient(app)

    app.dependency_overrides.clear()
