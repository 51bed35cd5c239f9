import pulumi
import pytest

STACK_SUFFIX = "0a1b2c3d"
EKS_AMI = "ami-0eks1234"


class NodeGroupMocks(pulumi.runtime.Mocks):
    """Fake AWS account: one VPC whose subnets are described by `explicit_routes`
    (explicitly associated route tables) and `main_routes` (the VPC main table).
    """

    stack_suffix = STACK_SUFFIX
    eks_ami = EKS_AMI

    def __init__(self):
        self.resources = []
        self.explicit_routes = {}
        self.main_routes = []

    def reset(self):
        self.resources.clear()
        self.explicit_routes = {}
        self.main_routes = []

    def registered(self, typ):
        return [r for r in self.resources if r.typ == typ]

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        self.resources.append(args)
        outputs = dict(args.inputs)
        if args.typ == "pulumi-python:dynamic:Resource":
            outputs["stack_name"] = f"{args.inputs['prefix']}-{STACK_SUFFIX}"
        elif args.typ == "aws:ec2/keyPair:KeyPair":
            outputs["keyName"] = f"{args.name}-name"
        elif args.typ == "aws:cloudformation/stack:Stack":
            outputs["outputs"] = {"NodeGroup": f"{args.inputs['name']}-NodeGroup-ASG"}
        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "aws:index/getRegion:getRegion":
            return {"name": "us-west-2", "id": "us-west-2"}
        if args.token == "aws:ec2/getAmi:getAmi":
            return {"id": EKS_AMI, "imageId": EKS_AMI}
        if args.token == "aws:ec2/getSubnet:getSubnet":
            return {"id": args.args["id"], "vpcId": "vpc-1"}
        if args.token == "aws:ec2/getRouteTables:getRouteTables":
            association = args.args["filters"][0]
            if association["name"] == "association.main":
                return {"id": "vpc-1", "ids": ["rtb-main"]}
            subnet_id = association["values"][0]
            ids = [f"rtb-{subnet_id}"] if subnet_id in self.explicit_routes else []
            return {"id": subnet_id, "ids": ids}
        if args.token == "aws:ec2/getRouteTable:getRouteTable":
            route_table_id = args.args["routeTableId"]
            if route_table_id == "rtb-main":
                routes = self.main_routes
            else:
                routes = self.explicit_routes[route_table_id.removeprefix("rtb-")]
            return {"id": route_table_id, "routeTableId": route_table_id, "routes": routes}
        return {}


MOCKS = NodeGroupMocks()
pulumi.runtime.set_mocks(MOCKS, preview=False)


@pytest.fixture
def mocks():
    MOCKS.reset()
    yield MOCKS
    MOCKS.reset()
