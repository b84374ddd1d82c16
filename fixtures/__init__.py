"""Host-side harness for exercising the reconciler in tests."""
