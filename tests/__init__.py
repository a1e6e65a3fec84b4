import os

# In-memory database for every test run; must be set before app is imported
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
