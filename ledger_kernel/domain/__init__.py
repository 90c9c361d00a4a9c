"""Pure domain layer: values, rules and math with no database access."""
