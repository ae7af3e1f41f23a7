# Importing the modules registers every table on Base.metadata
from models import users, category, product, cart, order, stock, log, token  # noqa: F401
