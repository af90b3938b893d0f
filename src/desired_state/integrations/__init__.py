"""Optional integrations for desired-state.

- ``_pytest_plugin``: the ``assert_in_desired_state`` fixture, registered through
  the ``pytest11`` entry point.  It is not imported here so that importing
  desired-state never imports pytest.
"""
