"""Hook specifications for the SeedVR2 plugin system."""

import pluggy

hookspec = pluggy.HookspecMarker("seedvr2")
hookimpl = pluggy.HookimplMarker("seedvr2")


class SeedVR2HookSpec:
    """Hook specifications for SeedVR2 host integration."""

    @hookspec
    def register_workflow_steps(self, register):
        """Register steps that extend a generation pass.

        Steps run in ascending priority. A step receives the
        ``GenerationPass`` and may append nodes or mark the pass complete,
        which skips every later step.

        Args:
            register: Callback to register a step.
                     Usage: register(step_func, priority, name)

        Example:
            @seedvr2_upscaler.hookimpl
            def register_workflow_steps(register):
                register(my_step, 8, "my-plugin:sharpen")
        """

    @hookspec
    def register_features(self, register):
        """Declare which installable feature provides each node class.

        Args:
            register: Callback to register a node class.
                     Usage: register(node_class, feature_id)
        """
