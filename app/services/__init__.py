"""Business logic behind the API routes: accounts, connections, sync, codes and dispatch."""
