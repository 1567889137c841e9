from relmap_core.api import Command, command_class

from .relations import Users


@command_class
class DeleteUsers(Command):
    relation_id = "users"
    restrictable = True

    def call(self):
        removed = self.relation.to_list()
        for row in removed:
            self.relation.gateway.dataset(self.relation.name.dataset).rows.remove(row)
        return removed


__all__ = ["DeleteUsers", "Users"]
