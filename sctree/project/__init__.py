from .links import check_links, pair_by_link
from .loader import Project, attach_to_path, load_project

__all__ = ["Project", "load_project", "attach_to_path", "check_links", "pair_by_link"]
