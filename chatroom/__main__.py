from chatroom.app import main

main()
