import os, sys, pytest
# Ensure backend directory is on path so 'bookflow' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from bookflow import create_app, get_db
from bookflow.models.user import Base
# Import all model modules to ensure tables are registered before create_all
import bookflow.models.printer  # noqa: F401
import bookflow.models.shipping_company  # noqa: F401
import bookflow.models.order  # noqa: F401
import bookflow.models.ledger  # noqa: F401
import bookflow.models.audit  # noqa: F401


@pytest.fixture(scope='session')
def upload_dir(tmp_path_factory):
    return tmp_path_factory.mktemp('order-files')


@pytest.fixture(scope='session', autouse=True)
def app_instance(upload_dir):
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-that-is-long-enough-for-hs256',
        'UPLOAD_DIR': str(upload_dir),
        'STORY_PRICE': 120.0,
        'DOMESTIC_COUNTRY': 'Egypt',
        'DOMESTIC_COUNTRY_ALIASES': 'مصر',
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture(autouse=True)
def clean_tables(app_instance):
    yield
    session = get_db()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_ctx(app_instance):
    with app_instance.app_context():
        yield app_instance
