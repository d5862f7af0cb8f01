"""
Unit tests for stack plans
"""

import unittest
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cka.config import ProjectConfig
from cka.plan import CLUSTER_STACKS, StackPlan, StackSpec, app_plan, full_plan, platform_plan
from cka.stacks import resolve_stack_program


def make_config(**overrides):
    init = {
        "awsRegion": "us-west-1",
        "pulumiOrganization": "acme",
        "hostname": "example.com",
        "acmeEmail": "ops@example.com",
    }
    init.update(overrides)
    return ProjectConfig({"init": init})


class TestStackPlan(unittest.TestCase):

    def test_destroy_order_is_reverse_of_up_order(self):
        plan = StackPlan([StackSpec("cluster"), StackSpec("ingress"), StackSpec("app")])
        self.assertEqual([s.name for s in plan.up_order()], ["cluster", "ingress", "app"])
        self.assertEqual([s.name for s in plan.destroy_order()], ["app", "ingress", "cluster"])

    def test_destroy_order_skips_kept_stacks(self):
        plan = StackPlan([StackSpec("cluster"), StackSpec("karpenter"), StackSpec("dapr")])
        self.assertEqual([s.name for s in plan.destroy_order(keep=CLUSTER_STACKS)], ["dapr"])

    def test_duplicate_names_rejected(self):
        with self.assertRaises(ValueError):
            StackPlan([StackSpec("cluster"), StackSpec("cluster")])

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            StackPlan([StackSpec("")])

    def test_reference_to_later_stack_rejected(self):
        with self.assertRaises(ValueError):
            StackPlan([
                StackSpec("tls", references={"cluster": ["kubeconfig"]}),
                StackSpec("cluster"),
            ])

    def test_reference_outside_plan_allowed(self):
        plan = StackPlan([StackSpec("app-staging-init", references={"cluster": ["kubeconfig"]})])
        self.assertEqual(plan.names, ["app-staging-init"])


class TestProjectPlans(unittest.TestCase):

    def test_platform_order(self):
        self.assertEqual(platform_plan(make_config()).names, [
            "cluster", "karpenter", "cert-manager", "emissary", "tls", "dapr", "kube-prometheus-stack",
        ])

    def test_secrets_flagged(self):
        plan = platform_plan(make_config(grafanaPassword="s3cret"))
        monitoring = [s for s in plan if s.name == "kube-prometheus-stack"][0]
        self.assertTrue(monitoring.config_map["grafana_password"].secret)
        self.assertEqual(monitoring.config_map["grafana_password"].value, "s3cret")
        self.assertFalse(monitoring.config_map["grafana_user"].secret)

    def test_cluster_encryption_key_only_when_set(self):
        self.assertEqual(platform_plan(make_config()).specs[0].config_map, {})
        plan = platform_plan(make_config(encryptionConfigKeyArn="arn:aws:kms:key"))
        self.assertEqual(plan.specs[0].config_map["encryption_config_key_arn"].value, "arn:aws:kms:key")

    def test_app_plan_per_environment(self):
        plan = app_plan(make_config(appEnvironments=["staging", "prod"], prodDbUser="produser"))
        self.assertEqual(plan.names, [
            "app-staging-init", "db-staging", "app-staging", "app-staging-ingress",
            "app-prod-init", "db-prod", "app-prod", "app-prod-ingress",
        ])
        db_prod = [s for s in plan if s.name == "db-prod"][0]
        self.assertEqual(db_prod.config_map["db_user"].value, "produser")
        self.assertTrue(db_prod.config_map["db_password"].secret)

    def test_full_plan_destroys_apps_before_platform(self):
        names = [s.name for s in full_plan(make_config()).destroy_order()]
        self.assertEqual(names[:4], ["app-staging-ingress", "app-staging", "db-staging", "app-staging-init"])
        self.assertEqual(names[-2:], ["karpenter", "cluster"])

    def test_every_planned_stack_has_a_program(self):
        plan = full_plan(make_config(appEnvironments=["staging", "prod2"]))
        for name in plan.names:
            with self.subTest(stack=name):
                self.assertTrue(callable(resolve_stack_program(name)))


if __name__ == "__main__":
    unittest.main(verbosity=2)
