"""TestNest multiple-choice assessment engine."""
