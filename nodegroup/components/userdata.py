"""Bootstrap script executed by every worker node on first boot.

The rendered text is stored verbatim in the launch configuration, so the
same inputs must always produce the same bytes.
"""

USER_DATA_PATH = "/opt/user-data"


def node_labels_arg(labels: dict[str, str] | None) -> str:
    """Kubelet flag attaching `labels` to the node, or an empty string."""
    if not labels:
        return ""
    parts = [f"{key}={value}" for key, value in labels.items()]
    return " --kubelet-extra-args --node-labels=" + ",".join(parts)


def heredoc_delimiter(stack_name: str, custom_user_data: str) -> str:
    delimiter = f"{stack_name}-user-data"
    # A line equal to the delimiter would end the here-document early
    lines = custom_user_data.splitlines()
    while delimiter in lines:
        delimiter += "-eof"
    return delimiter


def custom_user_data_block(stack_name: str, custom_user_data: str) -> str:
    """Shell snippet that writes the user's startup code to disk and runs it."""
    if not custom_user_data:
        return ""
    delimiter = heredoc_delimiter(stack_name, custom_user_data)
    return (
        f"cat >{USER_DATA_PATH} <<{delimiter}\n"
        f"{custom_user_data}\n"
        f"{delimiter}\n"
        f"chmod +x {USER_DATA_PATH}\n"
        f"{USER_DATA_PATH}\n"
    )


def render_user_data(
    region: str,
    cluster_name: str,
    endpoint: str,
    certificate_authority: str,
    stack_name: str,
    custom_user_data: str | None = "",
    labels: dict[str, str] | None = None,
) -> str:
    """Render the worker bootstrap script.

    The EKS bootstrap call joins the node to the cluster, the optional custom
    code runs next, and cfn-signal finally reports the exit code of the last
    command to the CloudFormation stack named `stack_name`.
    """
    custom = custom_user_data_block(stack_name, custom_user_data or "")
    return (
        "#!/bin/bash\n"
        "\n"
        f'/etc/eks/bootstrap.sh --apiserver-endpoint "{endpoint}" '
        f'--b64-cluster-ca "{certificate_authority}" "{cluster_name}"{node_labels_arg(labels)}\n'
        f"{custom}\n"
        f"/opt/aws/bin/cfn-signal --exit-code $? --stack {stack_name} "
        f"--resource NodeGroup --region {region}\n"
    )
