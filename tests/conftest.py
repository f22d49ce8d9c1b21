"""Shared fixtures: an in-memory stand-in for the AWS APIs the CLI calls.

The fake clients keep just enough state to answer describe calls after
create calls, and raise real botocore errors with the codes AWS uses.
"""

import itertools
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError, WaiterError

from ib_gateway_fargate.core.deployments.aws_ecs import EcsDeploymentConfig
from ib_gateway_fargate.core.settings import GatewaySettings

ACCOUNT_ID = "123456789012"
REGION = "us-east-2"
OPERATOR_IP = "198.51.100.7"
MUTATING_PREFIXES = (
    "allocate",
    "attach",
    "authorize",
    "create",
    "delete",
    "deregister",
    "register",
    "release",
    "revoke",
    "update",
)


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    """Build a botocore ClientError with an AWS error code."""
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


def _filter_values(filters: list[dict[str, Any]], name: str) -> list[str] | None:
    for item in filters:
        if item["Name"] == name:
            return list(item["Values"])
    return None


class FakeAws:
    """Account state shared by every fake client."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, str] = {}
        self.waiter_failures: set[str] = set()
        self._ids = itertools.count(1)

        self.vpcs = [{"VpcId": "vpc-default", "IsDefault": True}]
        self.subnets = [
            {"SubnetId": "subnet-a", "VpcId": "vpc-default", "MapPublicIpOnLaunch": True},
            {"SubnetId": "subnet-b", "VpcId": "vpc-default", "MapPublicIpOnLaunch": True},
            {"SubnetId": "subnet-private", "VpcId": "vpc-default", "MapPublicIpOnLaunch": False},
        ]
        self.addresses: dict[str, dict[str, Any]] = {}
        self.security_groups: dict[str, dict[str, Any]] = {}
        self.load_balancers: dict[str, dict[str, Any]] = {}
        self.target_groups: dict[str, dict[str, Any]] = {}
        self.listeners: dict[str, list[dict[str, Any]]] = {}
        self.clusters: dict[str, dict[str, Any]] = {}
        self.services: dict[tuple[str, str], dict[str, Any]] = {}
        self.task_definitions: dict[str, dict[str, Any]] = {}
        self.tasks: list[dict[str, Any]] = []
        self.log_groups: dict[str, dict[str, Any]] = {}
        self.log_page_size = 50
        self.roles: dict[str, dict[str, Any]] = {}

    def next_id(self) -> int:
        """Return a fresh counter value for generated identifiers."""
        return next(self._ids)

    def record(self, service: str, operation: str) -> None:
        """Log a call and raise an injected failure for it, if any."""
        self.calls.append((service, operation))
        code = self.failures.get(operation)
        if code:
            raise client_error(code, operation)

    def fail(self, operation: str, code: str) -> None:
        """Make every call to an operation raise a ClientError."""
        self.failures[operation] = code

    def operations(self) -> list[str]:
        """Return every recorded operation name in call order."""
        return [operation for _, operation in self.calls]

    def mutations(self) -> list[str]:
        """Return recorded operations that change account state."""
        return [
            operation
            for operation in self.operations()
            if operation.startswith(MUTATING_PREFIXES)
        ]

    def security_group_by_name(self, name: str) -> dict[str, Any]:
        """Return a stored security group by name."""
        for group in self.security_groups.values():
            if group["GroupName"] == name:
                return group
        raise KeyError(name)

    def add_log_event(self, group: str, stream: str, message: str, timestamp: int) -> None:
        """Append an event to a log group, creating the stream if needed."""
        log_group = self.log_groups.setdefault(group, {"streams": [], "events": []})
        if stream not in log_group["streams"]:
            log_group["streams"].append(stream)
        log_group["events"].append(
            {
                "eventId": f"event-{self.next_id()}",
                "timestamp": timestamp,
                "logStreamName": stream,
                "message": message,
            }
        )


class FakeWaiter:
    """Completes instantly, applying the state change the real waiter polls for."""

    def __init__(self, aws: FakeAws, service: str, name: str) -> None:
        self.aws = aws
        self.service = service
        self.name = name

    def wait(self, **kwargs: Any) -> None:
        self.aws.calls.append((self.service, f"wait:{self.name}"))
        if self.name in self.aws.waiter_failures:
            raise WaiterError(name=self.name, reason="Max attempts exceeded", last_response={})

        if self.name == "services_stable":
            for name in kwargs["services"]:
                service = self.aws.services[(kwargs["cluster"], name)]
                service["runningCount"] = service["desiredCount"]
        elif self.name == "services_inactive":
            for name in kwargs["services"]:
                service = self.aws.services.get((kwargs["cluster"], name))
                if service:
                    service["status"] = "INACTIVE"


class FakeClient:
    """Base class for fake service clients."""

    service = ""

    def __init__(self, aws: FakeAws) -> None:
        self.aws = aws

    def _call(self, operation: str) -> None:
        self.aws.record(self.service, operation)

    def get_waiter(self, name: str) -> FakeWaiter:
        return FakeWaiter(self.aws, self.service, name)


class FakeEc2(FakeClient):
    service = "ec2"

    def describe_vpcs(self, Filters: list[dict[str, Any]]) -> dict[str, Any]:
        self._call("describe_vpcs")
        wanted = _filter_values(Filters, "is-default")
        vpcs = [
            vpc
            for vpc in self.aws.vpcs
            if wanted is None or str(vpc["IsDefault"]).lower() in wanted
        ]
        return {"Vpcs": vpcs}

    def describe_subnets(self, Filters: list[dict[str, Any]]) -> dict[str, Any]:
        self._call("describe_subnets")
        vpc_ids = _filter_values(Filters, "vpc-id")
        public = _filter_values(Filters, "map-public-ip-on-launch")
        subnets = [
            subnet
            for subnet in self.aws.subnets
            if (vpc_ids is None or subnet["VpcId"] in vpc_ids)
            and (public is None or str(subnet["MapPublicIpOnLaunch"]).lower() in public)
        ]
        return {"Subnets": subnets}

    def describe_addresses(
        self,
        Filters: list[dict[str, Any]] | None = None,
        AllocationIds: list[str] | None = None,
    ) -> dict[str, Any]:
        self._call("describe_addresses")
        if AllocationIds is not None:
            missing = [item for item in AllocationIds if item not in self.aws.addresses]
            if missing:
                raise client_error("InvalidAllocationID.NotFound", "DescribeAddresses")
            return {"Addresses": [self.aws.addresses[item] for item in AllocationIds]}

        names = _filter_values(Filters or [], "tag:Name") or []
        addresses = [
            address
            for address in self.aws.addresses.values()
            if any(tag["Key"] == "Name" and tag["Value"] in names for tag in address["Tags"])
        ]
        return {"Addresses": addresses}

    def allocate_address(self, Domain: str) -> dict[str, Any]:
        self._call("allocate_address")
        number = self.aws.next_id()
        allocation_id = f"eipalloc-{number:04d}"
        address = {
            "AllocationId": allocation_id,
            "PublicIp": f"203.0.113.{number}",
            "Domain": Domain,
            "Tags": [],
        }
        self.aws.addresses[allocation_id] = address
        return {"AllocationId": allocation_id, "PublicIp": address["PublicIp"]}

    def release_address(self, AllocationId: str) -> None:
        self._call("release_address")
        if self.aws.addresses.pop(AllocationId, None) is None:
            raise client_error("InvalidAllocationID.NotFound", "ReleaseAddress")

    def create_tags(self, Resources: list[str], Tags: list[dict[str, str]]) -> None:
        self._call("create_tags")
        for resource_id in Resources:
            target = self.aws.addresses.get(resource_id) or self.aws.security_groups.get(
                resource_id
            )
            if target is None:
                raise client_error("InvalidID", "CreateTags")
            target.setdefault("Tags", []).extend(Tags)

    def describe_security_groups(
        self,
        Filters: list[dict[str, Any]] | None = None,
        GroupIds: list[str] | None = None,
    ) -> dict[str, Any]:
        self._call("describe_security_groups")
        if GroupIds is not None:
            missing = [item for item in GroupIds if item not in self.aws.security_groups]
            if missing:
                raise client_error("InvalidGroup.NotFound", "DescribeSecurityGroups")
            groups = [self.aws.security_groups[item] for item in GroupIds]
        else:
            names = _filter_values(Filters or [], "group-name")
            vpc_ids = _filter_values(Filters or [], "vpc-id")
            groups = [
                group
                for group in self.aws.security_groups.values()
                if (names is None or group["GroupName"] in names)
                and (vpc_ids is None or group["VpcId"] in vpc_ids)
            ]
        return {"SecurityGroups": [self._render_group(group) for group in groups]}

    def create_security_group(self, VpcId: str, GroupName: str, Description: str) -> dict[str, Any]:
        self._call("create_security_group")
        for group in self.aws.security_groups.values():
            if group["GroupName"] == GroupName and group["VpcId"] == VpcId:
                raise client_error("InvalidGroup.Duplicate", "CreateSecurityGroup")
        group_id = f"sg-{self.aws.next_id():04d}"
        self.aws.security_groups[group_id] = {
            "GroupId": group_id,
            "GroupName": GroupName,
            "VpcId": VpcId,
            "Description": Description,
            "Rules": [],
            "Tags": [],
        }
        return {"GroupId": group_id}

    def authorize_security_group_ingress(
        self, GroupId: str, IpPermissions: list[dict[str, Any]]
    ) -> None:
        self._call("authorize_security_group_ingress")
        group = self._group(GroupId, "AuthorizeSecurityGroupIngress")
        rules = self._rules(IpPermissions)
        if any(rule in group["Rules"] for rule in rules):
            raise client_error("InvalidPermission.Duplicate", "AuthorizeSecurityGroupIngress")
        group["Rules"].extend(rules)

    def revoke_security_group_ingress(
        self, GroupId: str, IpPermissions: list[dict[str, Any]]
    ) -> None:
        self._call("revoke_security_group_ingress")
        group = self._group(GroupId, "RevokeSecurityGroupIngress")
        rules = self._rules(IpPermissions)
        if any(rule not in group["Rules"] for rule in rules):
            raise client_error("InvalidPermission.NotFound", "RevokeSecurityGroupIngress")
        for rule in rules:
            group["Rules"].remove(rule)

    def delete_security_group(self, GroupId: str) -> None:
        self._call("delete_security_group")
        self._group(GroupId, "DeleteSecurityGroup")
        referenced = any(
            rule[1] == "group" and rule[2] == GroupId
            for group in self.aws.security_groups.values()
            for rule in group["Rules"]
        ) or any(
            GroupId in load_balancer["SecurityGroups"]
            for load_balancer in self.aws.load_balancers.values()
        )
        if referenced:
            raise client_error("DependencyViolation", "DeleteSecurityGroup")
        del self.aws.security_groups[GroupId]

    def _group(self, group_id: str, operation: str) -> dict[str, Any]:
        group = self.aws.security_groups.get(group_id)
        if group is None:
            raise client_error("InvalidGroup.NotFound", operation)
        return group

    @staticmethod
    def _rules(permissions: list[dict[str, Any]]) -> list[tuple[int, str, str]]:
        rules = []
        for permission in permissions:
            port = permission["FromPort"]
            for ip_range in permission.get("IpRanges", []):
                rules.append((port, "cidr", ip_range["CidrIp"]))
            for pair in permission.get("UserIdGroupPairs", []):
                rules.append((port, "group", pair["GroupId"]))
        return rules

    @staticmethod
    def _render_group(group: dict[str, Any]) -> dict[str, Any]:
        permissions: dict[int, dict[str, Any]] = {}
        for port, kind, value in group["Rules"]:
            permission = permissions.setdefault(
                port,
                {
                    "IpProtocol": "tcp",
                    "FromPort": port,
                    "ToPort": port,
                    "IpRanges": [],
                    "UserIdGroupPairs": [],
                },
            )
            if kind == "cidr":
                permission["IpRanges"].append({"CidrIp": value})
            else:
                permission["UserIdGroupPairs"].append({"GroupId": value})
        return {
            "GroupId": group["GroupId"],
            "GroupName": group["GroupName"],
            "VpcId": group["VpcId"],
            "IpPermissions": list(permissions.values()),
        }


class FakeElbv2(FakeClient):
    service = "elbv2"

    def describe_load_balancers(self, Names: list[str]) -> dict[str, Any]:
        self._call("describe_load_balancers")
        missing = [name for name in Names if name not in self.aws.load_balancers]
        if missing:
            raise client_error("LoadBalancerNotFound", "DescribeLoadBalancers")
        return {"LoadBalancers": [self.aws.load_balancers[name] for name in Names]}

    def create_load_balancer(self, Name: str, **kwargs: Any) -> dict[str, Any]:
        self._call("create_load_balancer")
        if Name in self.aws.load_balancers:
            raise client_error("DuplicateLoadBalancerName", "CreateLoadBalancer")
        arn = (
            f"arn:aws:elasticloadbalancing:{REGION}:{ACCOUNT_ID}:"
            f"loadbalancer/net/{Name}/{self.aws.next_id():04d}"
        )
        load_balancer = {
            "LoadBalancerArn": arn,
            "LoadBalancerName": Name,
            "State": {"Code": "provisioning"},
            "SecurityGroups": kwargs.get("SecurityGroups", []),
            "SubnetMappings": kwargs.get("SubnetMappings", []),
            "Scheme": kwargs.get("Scheme"),
            "Type": kwargs.get("Type"),
        }
        self.aws.load_balancers[Name] = load_balancer
        self.aws.listeners[arn] = []
        return {"LoadBalancers": [load_balancer]}

    def delete_load_balancer(self, LoadBalancerArn: str) -> None:
        self._call("delete_load_balancer")
        for name, load_balancer in list(self.aws.load_balancers.items()):
            if load_balancer["LoadBalancerArn"] == LoadBalancerArn:
                del self.aws.load_balancers[name]
                self.aws.listeners.pop(LoadBalancerArn, None)
                return
        raise client_error("LoadBalancerNotFound", "DeleteLoadBalancer")

    def describe_target_groups(self, Names: list[str]) -> dict[str, Any]:
        self._call("describe_target_groups")
        missing = [name for name in Names if name not in self.aws.target_groups]
        if missing:
            raise client_error("TargetGroupNotFound", "DescribeTargetGroups")
        return {"TargetGroups": [self.aws.target_groups[name] for name in Names]}

    def create_target_group(self, Name: str, **kwargs: Any) -> dict[str, Any]:
        self._call("create_target_group")
        if Name in self.aws.target_groups:
            raise client_error("DuplicateTargetGroupName", "CreateTargetGroup")
        arn = (
            f"arn:aws:elasticloadbalancing:{REGION}:{ACCOUNT_ID}:"
            f"targetgroup/{Name}/{self.aws.next_id():04d}"
        )
        target_group = {"TargetGroupArn": arn, "TargetGroupName": Name, **kwargs}
        self.aws.target_groups[Name] = target_group
        return {"TargetGroups": [target_group]}

    def delete_target_group(self, TargetGroupArn: str) -> None:
        self._call("delete_target_group")
        in_use = any(
            action["TargetGroupArn"] == TargetGroupArn
            for listeners in self.aws.listeners.values()
            for listener in listeners
            for action in listener["DefaultActions"]
        )
        if in_use:
            raise client_error("ResourceInUse", "DeleteTargetGroup")
        for name, target_group in list(self.aws.target_groups.items()):
            if target_group["TargetGroupArn"] == TargetGroupArn:
                del self.aws.target_groups[name]
                return
        raise client_error("TargetGroupNotFound", "DeleteTargetGroup")

    def describe_listeners(self, LoadBalancerArn: str) -> dict[str, Any]:
        self._call("describe_listeners")
        if LoadBalancerArn not in self.aws.listeners:
            raise client_error("LoadBalancerNotFound", "DescribeListeners")
        return {"Listeners": list(self.aws.listeners[LoadBalancerArn])}

    def create_listener(
        self,
        LoadBalancerArn: str,
        Protocol: str,
        Port: int,
        DefaultActions: list[dict[str, Any]],
    ) -> dict[str, Any]:
        self._call("create_listener")
        listeners = self.aws.listeners[LoadBalancerArn]
        if any(listener["Port"] == Port for listener in listeners):
            raise client_error("DuplicateListener", "CreateListener")
        listener = {
            "ListenerArn": f"{LoadBalancerArn}/listener/{self.aws.next_id():04d}",
            "Protocol": Protocol,
            "Port": Port,
            "DefaultActions": DefaultActions,
        }
        listeners.append(listener)
        return {"Listeners": [listener]}


class FakeEcs(FakeClient):
    service = "ecs"

    def describe_clusters(self, clusters: list[str]) -> dict[str, Any]:
        self._call("describe_clusters")
        found = [self.aws.clusters[name] for name in clusters if name in self.aws.clusters]
        failures = [
            {"arn": name, "reason": "MISSING"} for name in clusters if name not in self.aws.clusters
        ]
        return {"clusters": found, "failures": failures}

    def create_cluster(self, clusterName: str) -> dict[str, Any]:
        self._call("create_cluster")
        cluster = {
            "clusterArn": f"arn:aws:ecs:{REGION}:{ACCOUNT_ID}:cluster/{clusterName}",
            "clusterName": clusterName,
            "status": "ACTIVE",
        }
        self.aws.clusters[clusterName] = cluster
        return {"cluster": cluster}

    def delete_cluster(self, cluster: str) -> dict[str, Any]:
        self._call("delete_cluster")
        self._active_cluster(cluster, "DeleteCluster")
        busy = any(
            key[0] == cluster and service["status"] != "INACTIVE"
            for key, service in self.aws.services.items()
        )
        if busy:
            raise client_error("ClusterContainsServicesException", "DeleteCluster")
        self.aws.clusters[cluster]["status"] = "INACTIVE"
        return {"cluster": self.aws.clusters[cluster]}

    def describe_services(self, cluster: str, services: list[str]) -> dict[str, Any]:
        self._call("describe_services")
        self._active_cluster(cluster, "DescribeServices")
        found = [
            self.aws.services[(cluster, name)]
            for name in services
            if (cluster, name) in self.aws.services
        ]
        return {"services": found, "failures": []}

    def create_service(self, cluster: str, serviceName: str, **kwargs: Any) -> dict[str, Any]:
        self._call("create_service")
        self._active_cluster(cluster, "CreateService")
        existing = self.aws.services.get((cluster, serviceName))
        if existing and existing["status"] != "INACTIVE":
            raise client_error("InvalidParameterException", "CreateService")
        family = kwargs["taskDefinition"]
        if not self._latest_revision(family):
            raise client_error("ClientException", "CreateService")
        service = {
            "serviceArn": f"arn:aws:ecs:{REGION}:{ACCOUNT_ID}:service/{cluster}/{serviceName}",
            "serviceName": serviceName,
            "status": "ACTIVE",
            "desiredCount": kwargs["desiredCount"],
            "runningCount": 0,
            "deployments": 1,
            **kwargs,
        }
        service["taskDefinition"] = self._latest_revision(family)
        self.aws.services[(cluster, serviceName)] = service
        return {"service": service}

    def update_service(self, cluster: str, service: str, **changes: Any) -> dict[str, Any]:
        self._call("update_service")
        self._active_cluster(cluster, "UpdateService")
        current = self.aws.services.get((cluster, service))
        if current is None:
            raise client_error("ServiceNotFoundException", "UpdateService")
        if current["status"] != "ACTIVE":
            raise client_error("ServiceNotActiveException", "UpdateService")
        if "desiredCount" in changes:
            # Tasks settle immediately.
            current["desiredCount"] = changes["desiredCount"]
            current["runningCount"] = changes["desiredCount"]
        if "taskDefinition" in changes:
            current["taskDefinition"] = self._latest_revision(changes["taskDefinition"])
        if changes.get("forceNewDeployment") or "taskDefinition" in changes:
            current["deployments"] += 1
        return {"service": current}

    def delete_service(self, cluster: str, service: str, force: bool = False) -> dict[str, Any]:
        self._call("delete_service")
        self._active_cluster(cluster, "DeleteService")
        current = self.aws.services.get((cluster, service))
        if current is None or current["status"] == "INACTIVE":
            raise client_error("ServiceNotFoundException", "DeleteService")
        if current["desiredCount"] and not force:
            raise client_error("InvalidParameterException", "DeleteService")
        current["status"] = "DRAINING"
        return {"service": current}

    def register_task_definition(self, family: str, **kwargs: Any) -> dict[str, Any]:
        self._call("register_task_definition")
        revision = sum(1 for item in self.aws.task_definitions.values() if item["family"] == family)
        arn = f"arn:aws:ecs:{REGION}:{ACCOUNT_ID}:task-definition/{family}:{revision + 1}"
        definition = {
            "taskDefinitionArn": arn,
            "family": family,
            "revision": revision + 1,
            "status": "ACTIVE",
            **kwargs,
        }
        self.aws.task_definitions[arn] = definition
        return {"taskDefinition": definition}

    def list_task_definitions(self, familyPrefix: str, status: str) -> dict[str, Any]:
        self._call("list_task_definitions")
        arns = [
            arn
            for arn, item in self.aws.task_definitions.items()
            if item["family"].startswith(familyPrefix) and item["status"] == status
        ]
        return {"taskDefinitionArns": arns}

    def deregister_task_definition(self, taskDefinition: str) -> dict[str, Any]:
        self._call("deregister_task_definition")
        definition = self.aws.task_definitions[taskDefinition]
        definition["status"] = "INACTIVE"
        return {"taskDefinition": definition}

    def list_tasks(self, cluster: str, serviceName: str) -> dict[str, Any]:
        self._call("list_tasks")
        self._active_cluster(cluster, "ListTasks")
        if (cluster, serviceName) not in self.aws.services:
            raise client_error("ServiceNotFoundException", "ListTasks")
        return {"taskArns": [task["taskArn"] for task in self.aws.tasks]}

    def describe_tasks(self, cluster: str, tasks: list[str]) -> dict[str, Any]:
        self._call("describe_tasks")
        return {"tasks": [task for task in self.aws.tasks if task["taskArn"] in tasks]}

    def _active_cluster(self, name: str, operation: str) -> None:
        cluster = self.aws.clusters.get(name)
        if cluster is None or cluster["status"] != "ACTIVE":
            raise client_error("ClusterNotFoundException", operation)

    def _latest_revision(self, family: str) -> str | None:
        arns = [
            arn
            for arn, item in self.aws.task_definitions.items()
            if item["family"] == family and item["status"] == "ACTIVE"
        ]
        return arns[-1] if arns else None


class FakeLogs(FakeClient):
    service = "logs"

    def create_log_group(self, logGroupName: str) -> None:
        self._call("create_log_group")
        if logGroupName in self.aws.log_groups:
            raise client_error("ResourceAlreadyExistsException", "CreateLogGroup")
        self.aws.log_groups[logGroupName] = {"streams": [], "events": []}

    def describe_log_groups(self, logGroupNamePrefix: str) -> dict[str, Any]:
        self._call("describe_log_groups")
        names = [name for name in self.aws.log_groups if name.startswith(logGroupNamePrefix)]
        return {"logGroups": [{"logGroupName": name} for name in names]}

    def describe_log_streams(
        self, logGroupName: str, orderBy: str, descending: bool
    ) -> dict[str, Any]:
        self._call("describe_log_streams")
        group = self._group(logGroupName, "DescribeLogStreams")
        streams = list(reversed(group["streams"])) if descending else list(group["streams"])
        return {"logStreams": [{"logStreamName": name} for name in streams]}

    def filter_log_events(
        self, logGroupName: str, startTime: int, nextToken: str | None = None
    ) -> dict[str, Any]:
        self._call("filter_log_events")
        group = self._group(logGroupName, "FilterLogEvents")
        events = sorted(
            (event for event in group["events"] if event["timestamp"] >= startTime),
            key=lambda event: event["timestamp"],
        )
        offset = int(nextToken or 0)
        page = events[offset : offset + self.aws.log_page_size]
        response: dict[str, Any] = {"events": page}
        if offset + self.aws.log_page_size < len(events):
            response["nextToken"] = str(offset + self.aws.log_page_size)
        return response

    def delete_log_group(self, logGroupName: str) -> None:
        self._call("delete_log_group")
        self._group(logGroupName, "DeleteLogGroup")
        del self.aws.log_groups[logGroupName]

    def _group(self, name: str, operation: str) -> dict[str, Any]:
        group = self.aws.log_groups.get(name)
        if group is None:
            raise client_error("ResourceNotFoundException", operation)
        return group


class FakeIam(FakeClient):
    service = "iam"

    def get_role(self, RoleName: str) -> dict[str, Any]:
        self._call("get_role")
        role = self.aws.roles.get(RoleName)
        if role is None:
            raise client_error("NoSuchEntity", "GetRole")
        return {"Role": role}

    def create_role(self, RoleName: str, AssumeRolePolicyDocument: str) -> dict[str, Any]:
        self._call("create_role")
        if RoleName in self.aws.roles:
            raise client_error("EntityAlreadyExists", "CreateRole")
        role = {
            "RoleName": RoleName,
            "Arn": f"arn:aws:iam::{ACCOUNT_ID}:role/{RoleName}",
            "AssumeRolePolicyDocument": AssumeRolePolicyDocument,
            "Policies": [],
        }
        self.aws.roles[RoleName] = role
        return {"Role": role}

    def list_attached_role_policies(self, RoleName: str) -> dict[str, Any]:
        self._call("list_attached_role_policies")
        policies = self.aws.roles[RoleName]["Policies"]
        return {"AttachedPolicies": [{"PolicyArn": arn} for arn in policies]}

    def attach_role_policy(self, RoleName: str, PolicyArn: str) -> None:
        self._call("attach_role_policy")
        policies = self.aws.roles[RoleName]["Policies"]
        if PolicyArn not in policies:
            policies.append(PolicyArn)


class FakeSts(FakeClient):
    service = "sts"

    def get_caller_identity(self) -> dict[str, Any]:
        self._call("get_caller_identity")
        return {
            "Account": ACCOUNT_ID,
            "Arn": f"arn:aws:iam::{ACCOUNT_ID}:user/operator",
            "UserId": "AIDAEXAMPLE",
        }


CLIENTS: dict[str, type[FakeClient]] = {
    "ec2": FakeEc2,
    "elbv2": FakeElbv2,
    "ecs": FakeEcs,
    "logs": FakeLogs,
    "iam": FakeIam,
    "sts": FakeSts,
}


class FakeSession:
    """Stands in for boto3.session.Session."""

    def __init__(self, aws: FakeAws) -> None:
        self.aws = aws
        self.region_name = REGION
        self._clients: dict[str, FakeClient] = {}

    def client(self, service_name: str, **kwargs: Any) -> Any:
        if service_name not in self._clients:
            self._clients[service_name] = CLIENTS[service_name](self.aws)
        return self._clients[service_name]


@pytest.fixture
def aws() -> FakeAws:
    """Return an empty fake account with a default VPC and two public subnets."""
    return FakeAws()


@pytest.fixture
def session(aws: FakeAws) -> FakeSession:
    """Return a session bound to the fake account."""
    return FakeSession(aws)


@pytest.fixture
def config(tmp_path: Path) -> EcsDeploymentConfig:
    """Return the default deployment config with the task definition under tmp_path."""
    return EcsDeploymentConfig(
        aws_region=REGION,
        aws_profile=None,
        cluster_name="ib-gateway-cluster",
        service_name="ib-gateway-service",
        task_family="ib-gateway-paper",
        container_name="ib-gateway",
        container_image="ghcr.io/gnzsnz/ib-gateway:stable",
        task_cpu=1024,
        task_memory=2048,
        execution_role_name="ecsTaskExecutionRole",
        eip_name="ib-gateway-eip",
        nlb_name="ib-gateway-nlb",
        nlb_security_group_name="ib-gateway-nlb-sg",
        fargate_security_group_name="ib-gateway-fargate-sg",
        target_group_prefix="ib-gateway-tg",
        log_group_name="/ecs/ib-gateway",
        log_stream_prefix="ecs",
        trading_ports=[4003, 4004],
        task_definition_path=tmp_path / "task-definition.json",
        check_ip_url="https://checkip.amazonaws.com",
    )


@pytest.fixture
def gateway() -> GatewaySettings:
    """Return gateway settings with credentials and no optional flags."""
    return GatewaySettings(tws_userid="trader", tws_password="hunter2")


@pytest.fixture
def messages() -> list[str]:
    """Collect reporter output."""
    return []


@pytest.fixture
def reporter(messages: list[str]) -> Callable[[str], None]:
    """Return a reporter that appends to `messages`."""
    return messages.append


@pytest.fixture
def operator_ip() -> Callable[[str], str]:
    """Return an IP resolver that answers with a fixed documentation address."""
    return lambda url: OPERATOR_IP


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * 1000)
