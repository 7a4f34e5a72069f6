from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
import contextlib
import logging

logger = logging.getLogger(__name__)

class DatabaseSessionManager:
    """Manages sync database sessions for media records"""
    
    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize session manager with a sync engine
        
        Args:
            database_url: SQLAlchemy connection string (sqlite or postgresql)
            echo: Whether to echo SQL statements for debugging
        """
        if database_url.startswith('sqlite'):
            connect_args = {"check_same_thread": False}  # Sessions are used from the threadpool
        elif database_url.startswith('postgresql'):
            connect_args = {}
        else:
            raise ValueError(f"Unsupported database URL: {database_url}")
        
        self.database_url = database_url
        self.sync_engine = create_engine(
            database_url,
            echo=echo,
            connect_args=connect_args,
        )
        self.sync_session_factory = sessionmaker(
            bind=self.sync_engine,
            class_=Session,
            expire_on_commit=False
        )
    
    @contextlib.contextmanager
    def get_sync_session(self):
        """
        Get sync database session as context manager
        
        Usage:
            with session_manager.get_sync_session() as session:
                session.commit()
        """
        with self.sync_session_factory() as session:
            try:
                yield session
            except Exception:
                session.rollback()
                raise
    
    def close(self):
        """Dispose of the engine and its connection pool"""
        self.sync_engine.dispose()
    
    def create_tables_sync(self):
        """Create all tables defined in Base metadata"""
        from .models import Base
        Base.metadata.create_all(bind=self.sync_engine)
        logger.info("Database tables created")
