"""
Unit tests for the cka command line
Stack sequencing is patched out; these check what each command asks for
"""

import argparse
import json
import os
import sys
import tempfile
import unittest
from unittest.mock import patch

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pulumi import automation as auto

from cka.__main__ import KUBECONFIG_FILE, build_parser, handle_app, handle_destroy, handle_init, main
from cka.errors import ConfigurationMissing
from cka.plan import CLUSTER_STACKS


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.cwd = self.tmp.name

    def write_project(self, init=None, destroy=None):
        config = {"init": {"awsRegion": "us-west-1", "pulumiOrganization": "acme",
                           "hostname": "example.com", "acmeEmail": "ops@example.com"}}
        config["init"].update(init or {})
        if destroy is not None:
            config["destroy"] = destroy
        with open(os.path.join(self.cwd, "cka-config.json"), "w") as f:
            json.dump(config, f)
        with open(os.path.join(self.cwd, "Pulumi.yaml"), "w") as f:
            f.write("name: shop\nruntime: python\n")


class TestParser(unittest.TestCase):

    def test_destroy_flags(self):
        args = build_parser().parse_args(["destroy", "--keep-cluster"])
        self.assertTrue(args.keep_cluster)
        self.assertFalse(args.debug)

    def test_command_required(self):
        with self.assertRaises(SystemExit):
            build_parser().parse_args([])


KUBECONFIG_OUTPUTS = {"kubeconfig": auto.OutputValue("apiVersion: v1\n", True)}


def applies(*stacks, error=None):
    """bring_up stand-in that reports the given stacks as applied, then optionally fails"""
    def fake_bring_up(automation, plan, create_program, on_applied=None):
        results = {}
        for name in stacks:
            results[name] = KUBECONFIG_OUTPUTS if name == "cluster" else {}
            if on_applied is not None:
                on_applied(name, results[name])
        if error is not None:
            raise error
        return results
    return fake_bring_up


class TestInit(CliTestCase):

    def test_brings_up_platform_and_writes_kubeconfig(self):
        self.write_project()
        with patch('cka.__main__.bring_up', side_effect=applies(*CLUSTER_STACKS)) as mock_up:
            handle_init(argparse.Namespace(debug=False), self.cwd)

        automation, plan, _ = mock_up.call_args.args
        self.assertEqual(plan.names[0], "cluster")
        self.assertEqual(automation.project_name, "shop")
        self.assertEqual(automation.context.organization, "acme")
        self.assertIn("aws:region", automation.global_config_map)
        with open(os.path.join(self.cwd, KUBECONFIG_FILE)) as f:
            self.assertEqual(f.read(), "apiVersion: v1\n")
        self.assertFalse(os.path.exists(os.path.join(self.cwd, ".envrc")))

    def test_kubeconfig_written_before_later_stack_fails(self):
        self.write_project()
        failure = RuntimeError("emissary failed")
        with patch('cka.__main__.bring_up', side_effect=applies("cluster", "karpenter", "cert-manager", error=failure)):
            with self.assertRaises(RuntimeError):
                handle_init(argparse.Namespace(debug=False), self.cwd)

        with open(os.path.join(self.cwd, KUBECONFIG_FILE)) as f:
            self.assertEqual(f.read(), "apiVersion: v1\n")

    def test_no_kubeconfig_until_karpenter_is_up(self):
        self.write_project()
        failure = RuntimeError("karpenter failed")
        with patch('cka.__main__.bring_up', side_effect=applies("cluster", error=failure)):
            with self.assertRaises(RuntimeError):
                handle_init(argparse.Namespace(debug=False), self.cwd)

        self.assertFalse(os.path.exists(os.path.join(self.cwd, KUBECONFIG_FILE)))

    def test_missing_acme_email_fails_before_any_stack(self):
        self.write_project(init={"acmeEmail": ""})
        with patch('cka.__main__.bring_up') as mock_up:
            with self.assertRaises(ConfigurationMissing) as raised:
                handle_init(argparse.Namespace(debug=False), self.cwd)

        self.assertIn("acmeEmail", str(raised.exception))
        mock_up.assert_not_called()

    def test_missing_hostname_fails_before_any_stack(self):
        self.write_project(init={"hostname": ""})
        with patch('cka.__main__.bring_up') as mock_up:
            with self.assertRaises(ConfigurationMissing):
                handle_init(argparse.Namespace(debug=False), self.cwd)

        mock_up.assert_not_called()

    def test_direnv(self):
        self.write_project(init={"useDirenv": True})
        with patch('cka.__main__.bring_up', side_effect=applies(*CLUSTER_STACKS)), \
                patch('cka.__main__.run_cli_cmd') as mock_cmd:
            handle_init(argparse.Namespace(debug=False), self.cwd)

        mock_cmd.assert_called_once_with(["direnv", "allow", "."], cwd=self.cwd)
        with open(os.path.join(self.cwd, ".envrc")) as f:
            self.assertIn("KUBECONFIG=", f.read())

    def test_after_hook_persists_merged_config(self):
        self.write_project()
        with patch('cka.__main__.bring_up', side_effect=applies(*CLUSTER_STACKS)) as mock_up, \
                patch('cka.__main__.ConfigStore') as mock_store:
            handle_init(argparse.Namespace(debug=False), self.cwd)
            automation = mock_up.call_args.args[0]
            config_map = {"hostname": auto.ConfigValue(value="example.com")}
            automation.after_pulumi_run(stack_name="acme/tls", config_map=config_map)

        mock_store.return_value.persist.assert_called_once_with("acme/tls", config_map)


class TestApp(CliTestCase):

    def test_brings_up_app_plan(self):
        self.write_project()
        with patch('cka.__main__.bring_up', return_value={}) as mock_up:
            handle_app(argparse.Namespace(debug=False), self.cwd)

        plan = mock_up.call_args.args[1]
        self.assertEqual(plan.names, ["app-staging-init", "db-staging", "app-staging", "app-staging-ingress"])

    def test_missing_hostname_fails_before_any_stack(self):
        self.write_project(init={"hostname": ""})
        with patch('cka.__main__.bring_up') as mock_up:
            with self.assertRaises(ConfigurationMissing):
                handle_app(argparse.Namespace(debug=False), self.cwd)

        mock_up.assert_not_called()

    def test_invalid_environment_name_exits_non_zero(self):
        self.write_project(init={"appEnvironments": ["eu-west"]})
        with patch('cka.__main__.os.getcwd', return_value=self.cwd), \
                patch('cka.__main__.bring_up') as mock_up:
            self.assertEqual(main(["app"]), 1)

        mock_up.assert_not_called()


class TestDestroy(CliTestCase):

    def test_keep_cluster(self):
        self.write_project(destroy={"removeStacks": False})
        with patch('cka.__main__.tear_down') as mock_down:
            handle_destroy(argparse.Namespace(debug=False, keep_cluster=True), self.cwd)

        kwargs = mock_down.call_args.kwargs
        self.assertEqual(kwargs["keep"], CLUSTER_STACKS)
        self.assertFalse(kwargs["remove"])

    def test_after_hook_removes_stack_file(self):
        self.write_project()
        stack_file = os.path.join(self.cwd, "Pulumi.tls.yaml")
        with open(stack_file, "w") as f:
            f.write("config: {}\n")

        with patch('cka.__main__.tear_down') as mock_down:
            handle_destroy(argparse.Namespace(debug=False, keep_cluster=False), self.cwd)
        automation = mock_down.call_args.args[0]

        automation.after_pulumi_run(stack_name="acme/tls", remove=True)
        self.assertFalse(os.path.exists(stack_file))
        # Re-running destroy after a partial failure
        automation.after_pulumi_run(stack_name="acme/tls", remove=True)
        self.assertEqual(mock_down.call_args.kwargs["keep"], ())


class TestMain(CliTestCase):

    def test_missing_config_exits_non_zero(self):
        with patch('cka.__main__.os.getcwd', return_value=self.cwd):
            self.assertEqual(main(["init"]), 1)

    def test_success_exits_zero(self):
        self.write_project()
        with patch('cka.__main__.os.getcwd', return_value=self.cwd), \
                patch('cka.__main__.tear_down'):
            self.assertEqual(main(["destroy"]), 0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
