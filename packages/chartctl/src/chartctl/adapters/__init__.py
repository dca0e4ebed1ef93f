from ._base import CliAdapter
from .helm import HelmCli
from .helm_docs import HelmDocsCli
from .kubectl import KubectlCli

helm = HelmCli()
helm_docs = HelmDocsCli()
kubectl = KubectlCli()
git = CliAdapter("git")

__all__ = ["CliAdapter", "HelmCli", "HelmDocsCli", "KubectlCli", "git", "helm", "helm_docs", "kubectl"]
