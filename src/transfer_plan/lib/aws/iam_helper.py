import json
import re
from typing import Any

from parliament import analyze_policy_string
from parliament.finding import Finding

IAM_POLICY_VERSION = "2012-10-17"
TRANSFER_SERVICE_PRINCIPAL = "transfer.amazonaws.com"
LAMBDA_SERVICE_PRINCIPAL = "lambda.amazonaws.com"

DEFAULT_S3_USER_ACTIONS = [
    "s3:PutObject",
    "s3:GetObject",
    "s3:GetObjectTagging",
    "s3:DeleteObject",
    "s3:DeleteObjectVersion",
    "s3:GetObjectVersion",
    "s3:GetObjectVersionTagging",
    "s3:GetObjectACL",
    "s3:PutObjectACL",
]

EFS_USER_ACTIONS = [
    "elasticfilesystem:ClientMount",
    "elasticfilesystem:ClientWrite",
    "elasticfilesystem:ClientRootAccess",
]


def _finding_actions(finding: Finding) -> list[str]:
    # RESOURCE_STAR reports its actions as the detail, with the statement as location
    actions = []
    if isinstance(finding.location, dict):
        actions.extend(str(action) for action in finding.location.get("actions", []))
    if isinstance(finding.detail, list):
        actions.extend(str(action) for action in finding.detail)
    return actions


def _is_parliament_finding_filtered(
    finding: Finding, parliament_config: dict[str, Any]
) -> bool:
    issue_match = finding.issue in parliament_config
    if not issue_match:
        return False
    ignore_locations = parliament_config[finding.issue].get("ignore_locations")
    if not ignore_locations:
        # An issue listed without locations is ignored everywhere
        return True
    ignored_actions = [
        action
        for location in ignore_locations
        for action in location.get("actions", [])
    ]
    finding_actions = _finding_actions(finding)
    return bool(finding_actions) and all(
        any(
            re.fullmatch(ignored_action, finding_action, re.IGNORECASE)
            for ignored_action in ignored_actions
        )
        for finding_action in finding_actions
    )


def lint_iam_policy(
    policy_document: str | dict[str, Any],
    stringify: bool = False,  # noqa: FBT001, FBT002
    parliament_config: dict[str, Any] | None = None,
) -> str | dict[str, Any]:
    """Lint the contents of an IAM policy and abort execution if issues are found.

    :param policy_document: An IAM policy document represented as a JSON encoded string
        or a dictionary
    :type policy_document: Union[Text, dict[Text, Any]]

    :param stringify: If set to true then the dictionary of the policy document will be
        returned as a JSON string.
    :type stringify: bool

    :param parliament_config: A configuration object to customize the strictness and
        error checking of the Parliament library.
    :type parliament_config: dict

    :raises Exception: If there are linting violations detected then a bare exception is
        raised with the findings.

    :returns: The contents of the policy document that is passed to the function.

    :rtype: Union[Text, dict[Text, Any]]
    """
    stringified_document = None
    if not isinstance(policy_document, str):
        stringified_document = json.dumps(policy_document)
    findings = analyze_policy_string(
        stringified_document or policy_document,
        include_community_auditors=True,
        config=parliament_config,
    ).findings
    findings = [
        finding
        for finding in findings
        if not _is_parliament_finding_filtered(finding, parliament_config or {})
    ]
    if findings:
        msg = "Potential issues found with IAM policy document"
        raise Exception(msg, findings)  # noqa: TRY002
    return (
        stringified_document if stringify and stringified_document else policy_document
    )


def service_trust_policy(service_principal: str) -> dict[str, Any]:
    """Assume role policy allowing an AWS service to act through a role.

    :param service_principal: The service principal, e.g. `transfer.amazonaws.com`
    :type service_principal: str

    :returns: A dictionary object representing a trust policy document.
    """
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": service_principal},
                "Action": "sts:AssumeRole",
            }
        ],
    }


def transfer_trust_policy() -> dict[str, Any]:
    """Trust policy shared by every role that AWS Transfer assumes."""
    return service_trust_policy(TRANSFER_SERVICE_PRINCIPAL)


def sftp_s3_user_policy(
    bucket_name: str, user_name: str, actions: list[str]
) -> dict[str, Any]:
    """Policy definition scoping an SFTP user to its home prefix in a bucket.

    Listing has to be granted on the bucket itself so that clients can enumerate
    their home directory, while object access is limited to `<bucket>/<user_name>/*`.

    :param bucket_name: The name of the bucket that backs the SFTP server.
    :type bucket_name: str

    :param user_name: The login name of the SFTP user. It is used as the home prefix.
    :type user_name: str

    :param actions: The object level S3 actions that the user is permitted.
    :type actions: list[str]

    :returns: A dictionary object representing a policy document.
    """
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": [
            {
                "Sid": "AllowListingOfUserFolder",
                "Action": ["s3:ListBucket"],
                "Effect": "Allow",
                "Resource": [f"arn:aws:s3:::{bucket_name}"],
            },
            {
                "Sid": "HomeDirObjectAccess",
                "Effect": "Allow",
                "Action": list(actions),
                "Resource": f"arn:aws:s3:::{bucket_name}/{user_name}/*",
            },
        ],
    }


def sftp_efs_user_policy(file_system_arn: str) -> dict[str, Any]:
    """Policy definition granting an SFTP user access to a shared EFS filesystem.

    EFS access can't be narrowed to a path in IAM. Isolation between users relies on
    the POSIX profile (uid/gid) attached to each user.
    """
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": [
            {
                "Sid": "HomeDirFileSystemAccess",
                "Effect": "Allow",
                "Action": list(EFS_USER_ACTIONS),
                "Resource": file_system_arn,
            }
        ],
    }


def transfer_logging_policy() -> dict[str, Any]:
    """Permissions for the role AWS Transfer uses to write its CloudWatch logs."""
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": [
            {
                "Sid": "CloudWatchLogging",
                "Effect": "Allow",
                "Action": [
                    "logs:CreateLogGroup",
                    "logs:CreateLogStream",
                    "logs:DescribeLogStreams",
                    "logs:PutLogEvents",
                ],
                "Resource": "arn:aws:logs:*:*:log-group:/aws/transfer/*",
            }
        ],
    }


def workflow_execution_policy(
    function_arn: str, bucket_name: str | None
) -> dict[str, Any]:
    """Permissions for the role that runs the on-upload workflow.

    The role may invoke exactly one processing function and, when the server is S3
    backed, read and tag the uploaded objects.
    """
    statements: list[dict[str, Any]] = [
        {
            "Sid": "InvokeProcessingFunction",
            "Effect": "Allow",
            "Action": ["lambda:InvokeFunction"],
            "Resource": function_arn,
        }
    ]
    if bucket_name:
        statements.append(
            {
                "Sid": "UploadedObjectAccess",
                "Effect": "Allow",
                "Action": [
                    "s3:GetObject",
                    "s3:GetObjectTagging",
                    "s3:PutObjectTagging",
                    "s3:ListBucket",
                ],
                "Resource": [
                    f"arn:aws:s3:::{bucket_name}",
                    f"arn:aws:s3:::{bucket_name}/*",
                ],
            }
        )
    return {"Version": IAM_POLICY_VERSION, "Statement": statements}


def processing_function_policy(
    function_name: str,
    workflow_arn: Any,
    file_system_arn: str | None = None,
) -> dict[str, Any]:
    """Execution permissions for the function invoked by the workflow step.

    :param function_name: Name of the processing function, used to scope log writes.
    :type function_name: str

    :param workflow_arn: The ARN of the workflow whose step state the function reports.
        It is usually a reference that is only known once the workflow exists.

    :param file_system_arn: The EFS filesystem to grant mount access to, if any.
    :type file_system_arn: str

    :returns: A dictionary object representing a policy document.
    """
    statements: list[dict[str, Any]] = [
        {
            "Sid": "FunctionLogging",
            "Effect": "Allow",
            "Action": [
                "logs:CreateLogGroup",
                "logs:CreateLogStream",
                "logs:PutLogEvents",
            ],
            "Resource": f"arn:aws:logs:*:*:log-group:/aws/lambda/{function_name}:*",
        },
        {
            "Sid": "WorkflowStepCallback",
            "Effect": "Allow",
            "Action": ["transfer:SendWorkflowStepState"],
            "Resource": workflow_arn,
        },
        {
            "Sid": "VpcNetworkInterfaces",
            "Effect": "Allow",
            "Action": [
                "ec2:CreateNetworkInterface",
                "ec2:DescribeNetworkInterfaces",
                "ec2:DeleteNetworkInterface",
                "ec2:AssignPrivateIpAddresses",
                "ec2:UnassignPrivateIpAddresses",
            ],
            "Resource": "*",
        },
    ]
    if file_system_arn:
        statements.append(
            {
                "Sid": "FileSystemMount",
                "Effect": "Allow",
                "Action": [
                    "elasticfilesystem:ClientMount",
                    "elasticfilesystem:ClientWrite",
                ],
                "Resource": file_system_arn,
            }
        )
    return {"Version": IAM_POLICY_VERSION, "Statement": statements}
