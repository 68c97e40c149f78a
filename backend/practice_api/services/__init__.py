"""Service layer: business rules on top of the DAOs."""
