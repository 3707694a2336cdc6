"""Service layer: business rules and transactional persistence per domain."""
