"""Host adapters embedding the scratch engine in concrete UIs."""
