"""HTTP routers. Each one is a thin consumer of the services and DAOs."""
