import unittest

from release_deployer.executor import Authority, AuthorityParseError, parse_authority


class ParseAuthorityTests(unittest.TestCase):
    def test_full_authority(self) -> None:
        self.assertEqual(
            parse_authority("user:pass@host:2222"),
            Authority(host="host", port=2222, user="user", password="pass"),
        )

    def test_host_only(self) -> None:
        authority = parse_authority("host")
        self.assertIsNone(authority.user)
        self.assertIsNone(authority.password)
        self.assertEqual(authority.host, "host")
        self.assertEqual(authority.port, 22)

    def test_user_without_password(self) -> None:
        authority = parse_authority("user@host")
        self.assertEqual(authority.user, "user")
        self.assertIsNone(authority.password)
        self.assertEqual(authority.port, 22)

    def test_password_may_contain_colons_and_at_signs_are_split_once(self) -> None:
        authority = parse_authority("user:p:w@host")
        self.assertEqual(authority.password, "p:w")
        self.assertEqual(parse_authority("a@b@c").host, "b@c")

    def test_empty_segments_are_dropped(self) -> None:
        authority = parse_authority("user:@host:")
        self.assertEqual(authority.user, "user")
        self.assertIsNone(authority.password)
        self.assertEqual(authority.port, 22)
        self.assertIsNone(parse_authority("@host").user)

    def test_non_numeric_port(self) -> None:
        with self.assertRaises(AuthorityParseError):
            parse_authority("host:abc")

    def test_parse_error_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_authority("user@host:22x")

    def test_missing_host(self) -> None:
        with self.assertRaises(AuthorityParseError):
            parse_authority("user@")

    def test_str_hides_password(self) -> None:
        self.assertEqual(str(parse_authority("deploy:secret@web:2200")), "deploy@web:2200")


if __name__ == "__main__":
    unittest.main()
